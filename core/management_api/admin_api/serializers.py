from rest_framework import serializers

from core.models import AdminLog, SystemSettings, User
from core.services.accounts import EXPIRATION_TASKS
from core.services.subscription import VALID_STATUSES


class SystemSettingsSerializer(serializers.ModelSerializer):

    class Meta:
        model = SystemSettings
        fields = list(SystemSettings.FLAG_FIELDS) + ['updated_by', 'updated_at']
        read_only_fields = ['updated_by', 'updated_at']


class PinSerializer(serializers.Serializer):
    pin = serializers.CharField(allow_blank=True)


class AdminFlagSerializer(serializers.Serializer):
    isAdmin = serializers.BooleanField()
    pin = serializers.CharField(allow_blank=True)


class AdminSubscriptionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=VALID_STATUSES)
    premiumDurationDays = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class BulkMarkDeletionSerializer(serializers.Serializer):
    userIds = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    pin = serializers.CharField(allow_blank=True)


class TriggerExpirationsSerializer(serializers.Serializer):
    task = serializers.ChoiceField(choices=EXPIRATION_TASKS, default='all')


class AdminUserSerializer(serializers.ModelSerializer):
    """User row as listed in the admin panel"""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'is_admin',
            'subscription_status', 'subscription_source', 'trial_ends_at',
            'subscription_ends_at', 'subscription_cancelled_at', 'has_used_trial',
            'stripe_customer_id', 'stripe_subscription_id',
            'purchased_seats', 'used_seats', 'available_seats',
            'is_team_member', 'team_workspace_owner',
            'account_status', 'marked_for_deletion_at', 'deleted_by',
            'date_joined', 'last_login',
        ]
        read_only_fields = fields


class AdminLogSerializer(serializers.ModelSerializer):

    class Meta:
        model = AdminLog
        fields = ['id', 'admin_email', 'action', 'target_user_id', 'details', 'created_at']
        read_only_fields = fields
