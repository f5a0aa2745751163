from rest_framework import serializers
from drf_spectacular.utils import extend_schema_field

from core.models import User
from core.services.subscription import effective_status, get_tier_features


class UserProfileSerializer(serializers.ModelSerializer):
    """Profile of the authenticated user"""
    full_name = serializers.CharField(source='get_full_name', read_only=True)
    effective_subscription_status = serializers.SerializerMethodField()
    features = serializers.SerializerMethodField()
    seats = serializers.SerializerMethodField()
    team_workspace_owner_email = serializers.EmailField(
        source='team_workspace_owner.email', read_only=True, default=None
    )

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name', 'image_url',
            'is_admin', 'subscription_status', 'effective_subscription_status',
            'subscription_source', 'trial_ends_at', 'has_used_trial',
            'subscription_ends_at', 'subscription_cancelled_at', 'features',
            'seats', 'is_team_member', 'team_workspace_owner', 'team_workspace_owner_email',
            'account_status', 'marked_for_deletion_at', 'date_joined', 'last_login',
        ]
        read_only_fields = fields

    @extend_schema_field(serializers.CharField())
    def get_effective_subscription_status(self, obj):
        return effective_status(obj)

    @extend_schema_field(serializers.DictField(child=serializers.BooleanField()))
    def get_features(self, obj):
        return get_tier_features(effective_status(obj))

    @extend_schema_field(serializers.DictField(child=serializers.IntegerField()))
    def get_seats(self, obj):
        return {
            'purchased': obj.purchased_seats,
            'used': obj.used_seats,
            'available': obj.available_seats,
        }


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own profile"""

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'image_url']
