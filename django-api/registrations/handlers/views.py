"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Let the exception handler map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import json
import logging

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from registrations.domain.errors import DomainError, ErrorCode, ValidationError
from registrations.handlers.errors import status_for
from registrations.handlers.serializers import (
    PaymentLinkQuerySerializer,
    PaymentSerializer,
    PromoTermsSerializer,
    PromoValidateSerializer,
    RefundSerializer,
    RegistrationCreateSerializer,
    RegistrationListQuerySerializer,
    RegistrationSerializer,
    WebhookPayloadSerializer,
)
from registrations.services import RegistrationRequest, WebhookNotification, factory

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("HTTP_X_SIGN", "HTTP_X_SIGNATURE")


def _validated(serializer_class, data) -> dict:
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationError(
            code=ErrorCode.VALIDATION_FAILED,
            message="Validation failed",
            errors=serializer.errors,
        )
    return serializer.validated_data


def _user_id(request: Request) -> int | None:
    return request.user.id if request.user.is_authenticated else None


class RegistrationCreateView(APIView):
    """Handler for POST /api/registrations"""

    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "registrations"

    def post(self, request: Request) -> Response:
        data = _validated(RegistrationCreateSerializer, request.data)
        result = factory.registration_workflow().create_registration(
            RegistrationRequest(user_id=_user_id(request), **data)
        )
        return Response(
            {
                "success": True,
                "data": RegistrationSerializer(result.registration).data,
                "payment_link": result.payment_link,
            },
            status=status.HTTP_201_CREATED,
        )


class MyRegistrationsView(APIView):
    """Handler for GET /api/registrations/my?page=&limit="""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        data = _validated(RegistrationListQuerySerializer, request.query_params)
        page = factory.registration_workflow().list_user_registrations(
            request.user.id, page=data.get("page"), limit=data.get("limit")
        )
        return Response(
            {
                "success": True,
                "data": RegistrationSerializer(page.registrations, many=True).data,
                "pagination": {
                    "page": page.page,
                    "limit": page.limit,
                    "total": page.total,
                    "total_pages": page.total_pages,
                },
            }
        )


class RegistrationDetailView(APIView):
    """Handler for DELETE /api/registrations/{registration_id}"""

    permission_classes = [IsAuthenticated]

    def delete(self, request: Request, registration_id: str) -> Response:
        factory.registration_workflow().cancel_registration(registration_id, request.user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class RefundView(APIView):
    """Handler for POST /api/registrations/{registration_id}/refund"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, registration_id: str) -> Response:
        data = _validated(RefundSerializer, request.data)
        result = factory.reconciliation_service().refund(
            registration_id,
            user_id=request.user.id,
            is_staff=request.user.is_staff,
            amount=data.get("amount"),
            ext_ref=data.get("ext_ref") or None,
        )
        return Response(
            {
                "success": True,
                "data": {
                    "registration": RegistrationSerializer(result.registration).data,
                    "payment": PaymentSerializer(result.payment).data,
                    "refunded_amount": str(result.refunded_amount),
                },
                "message": "Refund processed successfully",
            }
        )


class PaymentLinkView(APIView):
    """Handler for GET /api/registrations/payment-link?email=&event_id="""

    permission_classes = [AllowAny]

    def get(self, request: Request) -> Response:
        data = _validated(PaymentLinkQuerySerializer, request.query_params)
        result = factory.registration_workflow().get_payment_link(data["email"], data["event_id"])
        return Response(
            {
                "success": True,
                "data": RegistrationSerializer(result.registration).data,
                "payment_link": result.payment_link,
            }
        )


class SyncPaymentView(APIView):
    """Handler for POST /api/registrations/{registration_id}/sync-payment"""

    permission_classes = [AllowAny]

    def post(self, request: Request, registration_id: str) -> Response:
        result = factory.reconciliation_service().sync_payment_status(registration_id)
        return Response(
            {
                "success": True,
                "data": {
                    "status_changed": result.status_changed,
                    "gateway_status": result.gateway_status,
                    "payment_status": result.payment.status.value,
                    "registration_status": result.registration.status.value,
                },
                "message": (
                    "Payment status synchronized successfully"
                    if result.status_changed
                    else "Payment status is already up to date"
                ),
            }
        )


class PaymentStatusView(APIView):
    """Handler for GET /api/payments/{payment_id}/status"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request, payment_id: str) -> Response:
        check = factory.reconciliation_service().check_payment_status(
            payment_id, user_id=request.user.id, is_staff=request.user.is_staff
        )
        return Response(
            {
                "success": True,
                "data": {
                    "payment": PaymentSerializer(check.payment).data,
                    "gateway_status": check.invoice.status,
                    "gateway_payment_id": check.invoice.payment_id,
                },
            }
        )


class PaymentReceiptView(APIView):
    """Handler for GET /api/payments/{payment_id}/receipt"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request, payment_id: str) -> Response:
        receipt = factory.reconciliation_service().get_receipt(
            payment_id, user_id=request.user.id, is_staff=request.user.is_staff
        )
        return Response({"success": True, "data": receipt})


class PromoCodeValidateView(APIView):
    """Handler for POST /api/promo-codes/validate"""

    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "promo_codes"

    def post(self, request: Request) -> Response:
        data = _validated(PromoValidateSerializer, request.data)
        terms = factory.promo_ledger().describe(data["code"], data.get("event_id"))
        return Response({"success": True, "data": PromoTermsSerializer(terms).data})


class PaymentWebhookView(APIView):
    """Handler for POST /api/webhooks/payments

    Authenticated by the body signature only. Answers with a bare status so the
    provider knows whether to retry: 2xx settled or ignored, 4xx permanent, 5xx
    retry.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request: Request) -> Response:
        body = request.body
        signature = next(
            (request.META[h] for h in SIGNATURE_HEADERS if request.META.get(h)), None
        )
        processor = factory.webhook_processor()

        try:
            processor.verify_signature(body, signature)
            notification = self._parse(body)
            processor.process(notification)
        except DomainError as exc:
            return Response({"success": False}, status=status_for(exc))
        return Response({"success": True})

    @staticmethod
    def _parse(body: bytes) -> WebhookNotification:
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError.for_field("body", "Malformed JSON") from exc
        if not isinstance(payload, dict):
            raise ValidationError.for_field("body", "Expected a JSON object")

        serializer = WebhookPayloadSerializer(data=payload)
        if not serializer.is_valid():
            logger.warning("Rejected malformed webhook", extra={"errors": serializer.errors})
            raise ValidationError.for_field("body", "Invalid webhook payload")
        data = serializer.validated_data
        return WebhookNotification(
            invoice_id=data["invoiceId"],
            status=data["status"],
            payment_id=data.get("paymentId") or None,
            payload=payload,
        )
