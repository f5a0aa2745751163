from rest_framework import serializers
from drf_spectacular.utils import extend_schema_field

from core.models import WorkspaceInvitation
from core.services.invitations import days_remaining


class InviteSerializer(serializers.Serializer):
    """Invite payload. Presence and format are checked by the invitation service"""
    email = serializers.CharField(required=False, allow_blank=True, default='')
    firstName = serializers.CharField(required=False, allow_blank=True, default='')
    lastName = serializers.CharField(required=False, allow_blank=True, default='')


class TokenSerializer(serializers.Serializer):
    token = serializers.CharField(required=False, allow_blank=True, default='')


class InvitationSerializer(serializers.ModelSerializer):
    """Invitation as shown to the workspace owner"""
    email = serializers.EmailField(source='invited_email', read_only=True)
    firstName = serializers.CharField(source='first_name', read_only=True)
    lastName = serializers.CharField(source='last_name', read_only=True)
    type = serializers.CharField(source='invitation_type', read_only=True)
    sentAt = serializers.DateTimeField(source='sent_at', read_only=True)
    expiresAt = serializers.DateTimeField(source='expires_at', read_only=True)
    respondedAt = serializers.DateTimeField(source='responded_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    daysRemaining = serializers.SerializerMethodField()
    hasAccount = serializers.SerializerMethodField()

    class Meta:
        model = WorkspaceInvitation
        fields = [
            'id', 'email', 'firstName', 'lastName', 'status', 'type',
            'sentAt', 'expiresAt', 'respondedAt', 'createdAt',
            'daysRemaining', 'hasAccount',
        ]
        read_only_fields = fields

    @extend_schema_field(serializers.IntegerField(allow_null=True))
    def get_daysRemaining(self, obj):
        """Only meaningful while the invitation is waiting on the invitee"""
        if not obj.is_pending():
            return None
        return days_remaining(obj)

    @extend_schema_field(serializers.BooleanField())
    def get_hasAccount(self, obj):
        return obj.invited_user_id is not None


class ReceivedInvitationSerializer(serializers.ModelSerializer):
    """Invitation as shown to the invitee"""
    ownerName = serializers.SerializerMethodField()
    ownerEmail = serializers.EmailField(source='owner.email', read_only=True)
    type = serializers.CharField(source='invitation_type', read_only=True)
    sentAt = serializers.DateTimeField(source='sent_at', read_only=True)
    expiresAt = serializers.DateTimeField(source='expires_at', read_only=True)

    class Meta:
        model = WorkspaceInvitation
        fields = ['id', 'ownerName', 'ownerEmail', 'status', 'type', 'sentAt', 'expiresAt']
        read_only_fields = fields

    @extend_schema_field(serializers.CharField())
    def get_ownerName(self, obj):
        return obj.owner.display_name
