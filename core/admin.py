from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils import timezone
from .models import (
    User, WorkspaceInvitation, WorkspaceTeamMember, Notification,
    AdminLog, SystemSettings, AnalysisGroup, PropertyAnalysis,
)


class ShowPkMixin:
    """Mixin to show the object's primary key on the change form."""

    def display_id(self, obj):
        return str(obj.pk) if obj else "-"
    display_id.short_description = 'ID'

    def get_readonly_fields(self, request, obj=None):
        base = super().get_readonly_fields(request, obj)
        readonly = list(base) if isinstance(base, (list, tuple)) else list(self.readonly_fields)
        if obj and 'display_id' not in readonly:
            readonly = ['display_id'] + readonly
        return readonly

    def get_fieldsets(self, request, obj=None):
        fieldsets = super().get_fieldsets(request, obj)
        if not obj or not fieldsets:
            return fieldsets
        # Ensure display_id is the first field in the first fieldset
        title, opts = fieldsets[0]
        opts = dict(opts)
        fields = list(opts.get('fields', ()))
        if 'display_id' not in fields:
            opts['fields'] = tuple(['display_id'] + fields)
            fieldsets = ((title, opts),) + tuple(fieldsets[1:])
        return fieldsets


@admin.register(User)
class CustomUserAdmin(ShowPkMixin, BaseUserAdmin):
    """Custom admin for email-based User model"""

    list_display = (
        'email', 'first_name', 'last_name', 'subscription_status', 'subscription_source',
        'seat_summary', 'is_team_member', 'account_status', 'is_admin', 'date_joined',
    )
    list_filter = (
        'subscription_status', 'subscription_source', 'account_status',
        'is_team_member', 'is_admin', 'is_staff', 'date_joined',
    )
    search_fields = ('email', 'first_name', 'last_name', 'stripe_customer_id')
    ordering = ('-date_joined',)

    fieldsets = (
        (None, {
            'fields': ('email', 'password')
        }),
        ('Personal info', {
            'fields': ('first_name', 'last_name', 'image_url')
        }),
        ('Subscription', {
            'fields': (
                'subscription_status', 'subscription_source', 'trial_ends_at', 'has_used_trial',
                'subscription_ends_at', 'subscription_cancelled_at',
            )
        }),
        ('Stripe', {
            'fields': ('stripe_customer_id', 'stripe_subscription_id', 'seat_subscription_item_id'),
            'classes': ('collapse',)
        }),
        ('Seats', {
            'fields': ('purchased_seats', 'used_seats', 'available_seats'),
            'description': 'Purchased seats must always equal used + available.'
        }),
        ('Team', {
            'fields': ('is_team_member', 'team_workspace_owner')
        }),
        ('Account', {
            'fields': ('account_status', 'marked_for_deletion_at', 'deleted_by')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_admin', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Important dates', {
            'fields': ('last_login', 'date_joined')
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'first_name', 'last_name', 'password1', 'password2'),
        }),
        ('Permissions', {
            'fields': ('is_admin', 'is_staff', 'is_superuser'),
        }),
    )

    readonly_fields = ('date_joined', 'last_login', 'has_used_trial')
    raw_id_fields = ('team_workspace_owner',)
    filter_horizontal = ('groups', 'user_permissions')

    def seat_summary(self, obj):
        return f"{obj.used_seats}/{obj.purchased_seats}"
    seat_summary.short_description = 'Seats (used/purchased)'


@admin.register(WorkspaceInvitation)
class WorkspaceInvitationAdmin(ShowPkMixin, admin.ModelAdmin):
    """Admin for WorkspaceInvitation model"""
    list_display = ('invited_email', 'owner', 'status', 'invitation_type', 'sent_at', 'expires_at', 'is_valid_display')
    list_filter = ('status', 'invitation_type', 'created_at', 'expires_at')
    search_fields = ('invited_email', 'owner__email', 'first_name', 'last_name')
    ordering = ('-created_at',)
    readonly_fields = ('token', 'created_at', 'updated_at', 'responded_at')
    raw_id_fields = ('owner', 'invited_user')

    fieldsets = (
        ('Invitation Info', {
            'fields': ('owner', 'invited_email', 'invited_user', 'first_name', 'last_name', 'status', 'invitation_type')
        }),
        ('Security', {
            'fields': ('token',),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at', 'sent_at', 'expires_at', 'responded_at'),
            'classes': ('collapse',)
        }),
    )

    def is_valid_display(self, obj):
        return obj.is_pending() and not obj.is_expired(timezone.now())
    is_valid_display.boolean = True
    is_valid_display.short_description = 'Valid'


@admin.register(WorkspaceTeamMember)
class WorkspaceTeamMemberAdmin(ShowPkMixin, admin.ModelAdmin):
    list_display = ('member', 'owner', 'joined_at')
    search_fields = ('member__email', 'owner__email')
    ordering = ('-joined_at',)
    raw_id_fields = ('owner', 'member', 'invitation')


@admin.register(Notification)
class NotificationAdmin(ShowPkMixin, admin.ModelAdmin):
    list_display = ('user', 'type', 'title', 'is_read', 'created_at')
    list_filter = ('type', 'is_read', 'created_at')
    search_fields = ('user__email', 'title', 'message')
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'read_at')
    raw_id_fields = ('user',)


@admin.register(AdminLog)
class AdminLogAdmin(ShowPkMixin, admin.ModelAdmin):
    """Read-only audit trail"""
    list_display = ('action', 'admin_email', 'target_user_id', 'created_at')
    list_filter = ('action', 'created_at')
    search_fields = ('action', 'admin_email', 'target_user_id')
    ordering = ('-created_at',)
    readonly_fields = ('admin_email', 'action', 'target_user_id', 'details', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(SystemSettings)
class SystemSettingsAdmin(admin.ModelAdmin):
    list_display = ('__str__', 'maintenance_mode', 'sign_in_enabled', 'sign_up_enabled', 'updated_by', 'updated_at')
    readonly_fields = ('updated_by', 'created_at', 'updated_at')

    def has_add_permission(self, request):
        return not SystemSettings.objects.exists()

    def save_model(self, request, obj, form, change):
        from core.services.system_settings import clear_settings_cache
        obj.updated_by = request.user.email
        super().save_model(request, obj, form, change)
        clear_settings_cache()


@admin.register(AnalysisGroup)
class AnalysisGroupAdmin(ShowPkMixin, admin.ModelAdmin):
    list_display = ('name', 'user', 'color', 'sort_order', 'created_at')
    search_fields = ('name', 'user__email')
    ordering = ('user', 'sort_order')
    raw_id_fields = ('user',)


@admin.register(PropertyAnalysis)
class PropertyAnalysisAdmin(ShowPkMixin, admin.ModelAdmin):
    list_display = ('name', 'user', 'city', 'state', 'total_units', 'purchase_price', 'cap_rate', 'is_draft', 'is_archived', 'created_at')
    list_filter = ('is_draft', 'is_favorite', 'is_archived', 'state', 'created_at')
    search_fields = ('name', 'address', 'city', 'zip_code', 'user__email')
    ordering = ('-created_at',)
    readonly_fields = (
        'cap_rate', 'cash_flow', 'cash_on_cash_return', 'gross_rent_multiplier',
        'net_operating_income', 'total_investment', 'debt_service_coverage',
        'created_at', 'updated_at',
    )
    raw_id_fields = ('user', 'group')

    fieldsets = (
        ('Property', {
            'fields': ('user', 'group', 'name', 'address', 'city', 'state', 'zip_code', 'total_units', 'purchase_price', 'notes')
        }),
        ('Calculator', {
            'fields': ('data', 'results'),
            'classes': ('collapse',)
        }),
        ('Key metrics', {
            'fields': (
                'cap_rate', 'cash_flow', 'cash_on_cash_return', 'gross_rent_multiplier',
                'net_operating_income', 'total_investment', 'debt_service_coverage',
            )
        }),
        ('Flags', {
            'fields': ('is_draft', 'is_favorite', 'is_archived')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
