from rest_framework import serializers
from drf_spectacular.utils import extend_schema_field

from core.models import Notification
from core.services.notifications import is_new


class NotificationSerializer(serializers.ModelSerializer):
    isRead = serializers.BooleanField(source='is_read', read_only=True)
    readAt = serializers.DateTimeField(source='read_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    isNew = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = [
            'id', 'type', 'title', 'message', 'link', 'metadata',
            'isRead', 'readAt', 'createdAt', 'isNew',
        ]
        read_only_fields = fields

    @extend_schema_field(serializers.BooleanField())
    def get_isNew(self, obj):
        return is_new(obj, self.context.get('now'))
