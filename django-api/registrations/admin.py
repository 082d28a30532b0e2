from django.contrib import admin

from registrations.models import Payment, PromoCode, Registration


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ["amount", "currency", "status", "invoice_id", "promo_redeemed", "created_at"]
    readonly_fields = fields
    can_delete = False


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ["email", "event", "status", "payment_status", "final_price", "created_at"]
    list_filter = ["status", "payment_status", "event"]
    search_fields = ["email", "name", "surname"]
    readonly_fields = ["final_price", "discount_amount", "created_at", "updated_at"]
    inlines = [PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ["id", "registration", "amount", "currency", "status", "invoice_id"]
    list_filter = ["status"]
    search_fields = ["invoice_id", "provider_payment_id", "registration__email"]
    readonly_fields = ["webhook_data", "created_at", "updated_at"]


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = [
        "code",
        "discount_type",
        "discount_value",
        "used_count",
        "usage_limit",
        "is_active",
        "expiration_date",
    ]
    list_filter = ["is_active", "discount_type"]
    search_fields = ["code"]
