from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiExample, OpenApiParameter

from core.models import Notification
from core.services import notifications
from core.management_api.utils import parse_int
from .serializers import NotificationSerializer

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@extend_schema(
    summary="🔔 List notifications",
    description="""
    Notifications of the authenticated user, newest first.

    **🔎 Query parameters**:
    - `status`: `unread`, `read` or `all` (default)
    - `limit` (default 20, max 100) and `offset`

    `isNew` marks notifications created in the last 5 minutes.
    """,
    parameters=[
        OpenApiParameter(name='status', type=str, enum=['unread', 'read', 'all'], required=False),
        OpenApiParameter(name='limit', type=int, required=False),
        OpenApiParameter(name='offset', type=int, required=False),
    ],
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Notifications",
            examples=[
                OpenApiExample(
                    'Notifications',
                    value={
                        'success': True,
                        'notifications': [
                            {
                                'id': 'notification-uuid',
                                'type': 'invitation_accepted',
                                'title': 'Team Invitation Accepted',
                                'message': 'Sam Ortiz accepted your invitation and joined your workspace.',
                                'link': None,
                                'metadata': {'memberEmail': 'analyst@example.com'},
                                'isRead': False,
                                'readAt': None,
                                'createdAt': '2026-04-19T10:00:00Z',
                                'isNew': True
                            }
                        ],
                        'unreadCount': 1,
                        'total': 1,
                        'hasMore': False
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="❌ Invalid status filter")
    },
    tags=["Notifications"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    status_filter = request.query_params.get('status', 'all')
    if status_filter not in ('unread', 'read', 'all'):
        return Response(
            {"error": "Invalid status. Use one of: unread, read, all"},
            status=status.HTTP_400_BAD_REQUEST
        )

    limit = min(max(parse_int(request.query_params.get('limit'), DEFAULT_LIMIT), 1), MAX_LIMIT)
    offset = max(parse_int(request.query_params.get('offset'), 0), 0)

    queryset = Notification.objects.filter(user=request.user)
    unread_count = queryset.filter(is_read=False).count()
    if status_filter == 'unread':
        queryset = queryset.filter(is_read=False)
    elif status_filter == 'read':
        queryset = queryset.filter(is_read=True)

    total = queryset.count()
    page = queryset.order_by('-created_at')[offset:offset + limit]
    serializer = NotificationSerializer(page, many=True, context={'now': timezone.now()})

    return Response({
        'success': True,
        'notifications': serializer.data,
        'unreadCount': unread_count,
        'total': total,
        'hasMore': offset + limit < total,
    })


@extend_schema(
    summary="👁️ Mark notification as read",
    request=None,
    responses={
        200: OpenApiResponse(description="✅ Marked as read"),
        404: OpenApiResponse(description="🚫 Notification not found")
    },
    tags=["Notifications"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, notification_id):
    notification = Notification.objects.filter(pk=notification_id, user=request.user).first()
    if notification is None:
        return Response({"error": "Notification not found"}, status=status.HTTP_404_NOT_FOUND)

    notifications.mark_read(notification)
    return Response({
        'success': True,
        'notification': NotificationSerializer(notification, context={'now': timezone.now()}).data,
    })


@extend_schema(
    summary="✔️ Mark all notifications as read",
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Marked as read",
            examples=[OpenApiExample('Marked', value={'success': True, 'updated': 3})]
        )
    },
    tags=["Notifications"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_all_notifications_read(request):
    updated = notifications.mark_all_read(request.user)
    return Response({'success': True, 'updated': updated})


@extend_schema(
    summary="🗑️ Delete notification",
    request=None,
    responses={
        200: OpenApiResponse(description="✅ Deleted"),
        404: OpenApiResponse(description="🚫 Notification not found")
    },
    tags=["Notifications"]
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_notification(request, notification_id):
    deleted, _ = Notification.objects.filter(pk=notification_id, user=request.user).delete()
    if not deleted:
        return Response({"error": "Notification not found"}, status=status.HTTP_404_NOT_FOUND)
    return Response({'success': True})
