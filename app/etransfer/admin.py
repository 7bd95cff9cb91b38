"""
E-transfer admin configuration.

Order status is FSM-protected, so it is read-only here; state changes go
through PaymentInitiator and ReconciliationService. Gateway options are
saved through GatewaySettingsService so OAuth changes drop the stored
credential.
"""

from django.contrib import admin, messages

from etransfer.models import GatewayOption, Order, OrderNote, StoredCredential
from etransfer.services import GatewaySettingsService
from etransfer.workers import reconcile_single_order

__all__ = [
    "GatewayOptionAdmin",
    "OrderAdmin",
    "StoredCredentialAdmin",
]


class OrderNoteInline(admin.TabularInline):
    model = OrderNote
    extra = 0
    fields = ["note", "created_at"]
    readonly_fields = ["note", "created_at"]
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for Order.

    Provides visibility into orders and their e-transfer tracking data.
    """

    list_display = [
        "number",
        "email",
        "amount_display",
        "status",
        "payment_method",
        "transaction_id",
        "created_at",
    ]
    list_filter = ["status", "payment_method", "currency", "created_at"]
    search_fields = ["id", "number", "email", "transaction_id"]
    readonly_fields = [
        "id",
        "status",
        "transaction_id",
        "metadata",
        "paid_at",
        "failed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [OrderNoteInline]
    actions = ["reconcile_now"]

    fieldsets = (
        (None, {"fields": ("id", "number", "status")}),
        ("Billing", {"fields": ("email", "first_name", "last_name")}),
        ("Amount", {"fields": ("total", "currency", "payment_method")}),
        (
            "E-Transfer",
            {"fields": ("transaction_id", "metadata")},
        ),
        (
            "Timestamps",
            {"fields": ("paid_at", "failed_at", "cancelled_at", "created_at", "updated_at")},
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Order) -> str:
        return f"{obj.total} {obj.currency}"

    @admin.action(description="Reconcile selected orders now")
    def reconcile_now(self, request, queryset):
        for order in queryset:
            reconcile_single_order.delay(str(order.id))
        self.message_user(request, f"Queued reconciliation for {queryset.count()} orders.")


@admin.register(GatewayOption)
class GatewayOptionAdmin(admin.ModelAdmin):
    """Gateway settings; saved through GatewaySettingsService."""

    list_display = ["key", "display_value", "updated_at"]
    search_fields = ["key"]
    ordering = ["key"]

    @admin.display(description="Value")
    def display_value(self, obj: GatewayOption) -> str:
        if obj.key == "client_secret" and obj.value:
            return "********"
        return obj.value

    def save_model(self, request, obj, form, change):
        GatewaySettingsService.set(obj.key, obj.value)
        if not obj.pk:
            obj.pk = GatewayOption.objects.get(key=obj.key).pk

    def changelist_view(self, request, extra_context=None):
        missing = GatewaySettingsService.missing_settings()
        if missing:
            self.message_user(
                request,
                f"E-transfer gateway requires the following settings: {', '.join(missing)}",
                level=messages.WARNING,
            )
        return super().changelist_view(request, extra_context)


@admin.register(StoredCredential)
class StoredCredentialAdmin(admin.ModelAdmin):
    """Read-only view of the stored bearer credential."""

    list_display = ["slot", "expires_at", "is_expired", "updated_at"]
    fields = ["slot", "expires_at", "config_fingerprint", "updated_at"]
    readonly_fields = fields

    @admin.display(boolean=True, description="Expired")
    def is_expired(self, obj: StoredCredential) -> bool:
        return obj.is_expired

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False
