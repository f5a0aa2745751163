from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiExample, OpenApiParameter
import logging

from core.models import PENDING_INVITATION_STATUSES, WorkspaceInvitation
from core.services import invitations, seat_ledger
from core.services.exceptions import ServiceError
from core.management_api.utils import service_error_response
from .serializers import (
    InviteSerializer,
    TokenSerializer,
    InvitationSerializer,
    ReceivedInvitationSerializer,
)

logger = logging.getLogger(__name__)


def _get_invitation(invitation_id):
    return WorkspaceInvitation.objects.select_related('owner', 'invited_user').filter(pk=invitation_id).first()


def _not_found():
    return Response({"error": "Invitation not found"}, status=status.HTTP_404_NOT_FOUND)


@extend_schema(
    summary="✉️ Invite team member",
    description="""
    Invite someone to your workspace by email.

    **💺 Seats**: every invitation holds one of your seats until it is declined,
    cancelled or expires. Admin accounts are not limited by seats.

    **📨 Invitation types**:
    - `new_user` → `pending_signup`: no account yet, joins after signing up
    - `existing_user` → `pending`
    - `premium_conflict` → `pending_premium_cancel`: the invitee must cancel
      their own premium subscription first

    A previous declined, expired or cancelled invitation to the same address is reused.
    """,
    request=InviteSerializer,
    responses={
        201: OpenApiResponse(
            description="✅ Invitation sent",
            examples=[
                OpenApiExample(
                    'Invitation Sent',
                    value={
                        'success': True,
                        'invitation': {
                            'id': 'invitation-uuid',
                            'email': 'analyst@example.com',
                            'firstName': 'Sam',
                            'lastName': 'Ortiz',
                            'status': 'pending',
                            'type': 'existing_user',
                            'sentAt': '2026-04-19T10:00:00Z',
                            'expiresAt': '2026-04-26T10:00:00Z',
                            'respondedAt': None,
                            'createdAt': '2026-04-19T10:00:00Z',
                            'daysRemaining': 7,
                            'hasAccount': True
                        },
                        'emailSent': True,
                        'seats': {'purchased': 5, 'used': 4, 'available': 1}
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Invalid input, duplicate invitation or no seats",
            examples=[
                OpenApiExample(
                    'No Seats',
                    value={
                        'error': 'No available seats. Purchase more seats to invite team members.',
                        'purchasedSeats': 5,
                        'usedSeats': 5,
                        'availableSeats': 0
                    }
                ),
                OpenApiExample(
                    'Already Invited',
                    value={
                        'error': 'This user has already been invited and has a pending invitation.',
                        'invitationId': 'invitation-uuid'
                    }
                )
            ]
        )
    },
    tags=["Team"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invite_member(request):
    serializer = InviteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    owner = request.user
    try:
        invitation, email_sent = invitations.invite(
            owner, data['email'], data['firstName'], data['lastName']
        )
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'invitation': InvitationSerializer(invitation).data,
        'emailSent': email_sent,
        'seats': seat_ledger.seat_counts(owner),
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    summary="📋 List sent invitations",
    description="""
    Every invitation you have sent, newest first, plus the same invitations grouped
    by state and a count per state. `pending` groups all states still waiting on the invitee.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Invitations",
            examples=[
                OpenApiExample(
                    'Invitations',
                    value={
                        'success': True,
                        'invitations': [],
                        'categorized': {'pending': [], 'accepted': [], 'declined': [], 'expired': [], 'rescinded': []},
                        'summary': {'total': 0, 'pending': 0, 'accepted': 0, 'declined': 0, 'expired': 0, 'rescinded': 0}
                    }
                )
            ]
        )
    },
    tags=["Team"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_invitations(request):
    result = invitations.list_for_owner(request.user)
    return Response({
        'success': True,
        'invitations': InvitationSerializer(result['invitations'], many=True).data,
        'categorized': {
            state: InvitationSerializer(items, many=True).data
            for state, items in result['categorized'].items()
        },
        'summary': result['summary'],
    })


@extend_schema(
    summary="📥 Received invitations",
    description="Pending invitations addressed to the authenticated user's email.",
    request=None,
    responses={200: OpenApiResponse(response=ReceivedInvitationSerializer(many=True), description="✅ Invitations")},
    tags=["Team"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def received_invitations(request):
    pending = (
        WorkspaceInvitation.objects.select_related('owner')
        .filter(invited_email=request.user.email.lower(), status__in=PENDING_INVITATION_STATUSES)
        .order_by('-sent_at')
    )
    return Response({
        'success': True,
        'invitations': ReceivedInvitationSerializer(pending, many=True).data,
    })


@extend_schema(
    summary="✅ Accept invitation",
    description="""
    Join the inviting workspace.

    **🚫 Refused when**:
    - The invitation is addressed to another email (403)
    - It was already accepted, declined, cancelled, or has expired
    - You belong to another team
    - You have an active premium subscription (`requiresAction: cancel_premium`)

    A trial in progress ends when you join a team.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Joined",
            examples=[
                OpenApiExample(
                    'Joined',
                    value={
                        'success': True,
                        'message': "You have joined Dana Lee's workspace",
                        'workspace': {'ownerId': 'owner-uuid', 'ownerEmail': 'dana@example.com', 'ownerName': 'Dana Lee'}
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Not acceptable",
            examples=[
                OpenApiExample(
                    'Premium Conflict',
                    value={
                        'error': 'You must cancel your Premium subscription before accepting this invitation.',
                        'requiresAction': 'cancel_premium'
                    }
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 This invitation is not for you"),
        404: OpenApiResponse(description="🚫 Invitation not found")
    },
    tags=["Team"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_invitation(request, invitation_id):
    invitation = _get_invitation(invitation_id)
    if invitation is None:
        return _not_found()

    try:
        membership = invitations.accept(invitation, request.user)
    except ServiceError as e:
        return service_error_response(e)

    owner = membership.owner
    return Response({
        'success': True,
        'message': f"You have joined {owner.display_name}'s workspace",
        'workspace': {
            'ownerId': str(owner.id),
            'ownerEmail': owner.email,
            'ownerName': owner.get_full_name(),
        }
    })


@extend_schema(
    summary="🔗 Accept invitation by token",
    description="""
    Accept the invitation from the email link. Idempotent: accepting an invitation you
    already accepted returns `alreadyAccepted: true`.
    """,
    request=TokenSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Joined",
            examples=[
                OpenApiExample(
                    'Already Accepted',
                    value={
                        'success': True,
                        'alreadyAccepted': True,
                        'workspace': {'ownerId': 'owner-uuid', 'ownerEmail': 'dana@example.com', 'ownerName': 'Dana Lee'}
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="❌ Token missing or invitation not acceptable"),
        403: OpenApiResponse(description="🚫 This invitation is not for you"),
        404: OpenApiResponse(description="🚫 Invalid invitation token")
    },
    tags=["Team"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_invitation_by_token(request):
    serializer = TokenSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        invitation, already_accepted = invitations.accept_by_token(
            serializer.validated_data['token'], request.user
        )
    except ServiceError as e:
        return service_error_response(e)

    owner = invitation.owner
    return Response({
        'success': True,
        'alreadyAccepted': already_accepted,
        'workspace': {
            'ownerId': str(owner.id),
            'ownerEmail': owner.email,
            'ownerName': owner.get_full_name(),
        }
    })


@extend_schema(
    summary="🔎 Validate invitation link",
    description="""
    **Public.** Check an invitation token before sign-up or sign-in.

    `userExists` tells the client whether to show the sign-in or the sign-up form.
    """,
    parameters=[OpenApiParameter(name='token', type=str, required=True, description='Invitation token')],
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Valid invitation",
            examples=[
                OpenApiExample(
                    'Valid',
                    value={
                        'valid': True,
                        'invitation': {
                            'id': 'invitation-uuid',
                            'email': 'analyst@example.com',
                            'firstName': 'Sam',
                            'lastName': 'Ortiz',
                            'ownerName': 'Dana Lee',
                            'ownerEmail': 'dana@example.com',
                            'status': 'pending_signup',
                            'type': 'new_user',
                            'expiresAt': '2026-04-26T10:00:00Z',
                            'userExists': False
                        }
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Expired or already answered",
            examples=[OpenApiExample('Expired', value={'error': 'This invitation has expired'})]
        ),
        404: OpenApiResponse(description="🚫 Invalid invitation token")
    },
    tags=["Team"]
)
@api_view(['GET'])
@permission_classes([AllowAny])
def validate_invitation(request):
    try:
        details = invitations.validate(request.query_params.get('token'))
    except ServiceError as e:
        return service_error_response(e)
    return Response({'valid': True, 'invitation': details})


@extend_schema(
    summary="🙅 Decline invitation",
    description="Decline an invitation addressed to you. The owner gets the seat back and is notified.",
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Declined",
            examples=[OpenApiExample('Declined', value={'success': True, 'message': 'Invitation declined'})]
        ),
        400: OpenApiResponse(description="❌ Already answered or cancelled"),
        403: OpenApiResponse(description="🚫 This invitation is not for you"),
        404: OpenApiResponse(description="🚫 Invitation not found")
    },
    tags=["Team"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def decline_invitation(request, invitation_id):
    invitation = _get_invitation(invitation_id)
    if invitation is None:
        return _not_found()

    try:
        invitations.decline(invitation, request.user)
    except ServiceError as e:
        return service_error_response(e)
    return Response({'success': True, 'message': 'Invitation declined'})


@extend_schema(
    summary="↩️ Cancel invitation",
    description="""
    Withdraw an invitation you sent. A still pending invitation gives its seat back.
    Accepted invitations cannot be cancelled: remove the team member instead.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Cancelled",
            examples=[
                OpenApiExample(
                    'Cancelled',
                    value={
                        'success': True,
                        'message': 'Invitation cancelled',
                        'seats': {'purchased': 5, 'used': 2, 'available': 3}
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="❌ Accepted or already cancelled"),
        403: OpenApiResponse(description="🚫 Not your invitation"),
        404: OpenApiResponse(description="🚫 Invitation not found")
    },
    tags=["Team"]
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def rescind_invitation(request, invitation_id):
    invitation = _get_invitation(invitation_id)
    if invitation is None:
        return _not_found()

    owner = request.user
    try:
        invitations.rescind(invitation, owner)
    except ServiceError as e:
        return service_error_response(e)

    owner.refresh_from_db(fields=['purchased_seats', 'used_seats', 'available_seats'])
    return Response({
        'success': True,
        'message': 'Invitation cancelled',
        'seats': seat_ledger.seat_counts(owner),
    })


@extend_schema(
    summary="🔁 Resend invitation",
    description="""
    Send the invitation again with a new link valid for 7 days.

    **⏱️ Cooldown**: 5 minutes between sends (429 with `canResendAt`).

    An expired or declined invitation becomes pending again and takes a seat.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Resent",
            examples=[
                OpenApiExample(
                    'Resent',
                    value={
                        'success': True,
                        'message': 'Invitation resent',
                        'invitation': {'id': 'invitation-uuid', 'status': 'pending', 'daysRemaining': 7},
                        'emailSent': True
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="❌ Accepted or cancelled, or no seat left"),
        403: OpenApiResponse(description="🚫 Not your invitation"),
        404: OpenApiResponse(description="🚫 Invitation not found"),
        429: OpenApiResponse(
            description="⏱️ Cooldown",
            examples=[
                OpenApiExample(
                    'Cooldown',
                    value={
                        'error': 'Please wait at least 5 minutes before resending an invitation',
                        'canResendAt': '2026-04-19T10:05:00Z'
                    }
                )
            ]
        )
    },
    tags=["Team"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def resend_invitation(request, invitation_id):
    invitation = _get_invitation(invitation_id)
    if invitation is None:
        return _not_found()

    try:
        invitation, email_sent = invitations.resend(invitation, request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'message': 'Invitation resent',
        'invitation': InvitationSerializer(invitation).data,
        'emailSent': email_sent,
    })


@extend_schema(
    summary="👥 Team members",
    description="Members of your workspace with seat usage. Workspace owners only.",
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Members",
            examples=[
                OpenApiExample(
                    'Members',
                    value={
                        'success': True,
                        'members': [
                            {
                                'id': 'membership-uuid',
                                'memberId': 'user-uuid',
                                'email': 'analyst@example.com',
                                'name': 'Sam Ortiz',
                                'firstName': 'Sam',
                                'lastName': 'Ortiz',
                                'imageUrl': None,
                                'joinedAt': '2026-04-10T10:00:00Z',
                                'lastLoginAt': '2026-04-18T08:00:00Z',
                                'daysSinceJoined': 9,
                                'isCurrentUser': False
                            }
                        ],
                        'workspace': {
                            'owner': {'email': 'dana@example.com', 'name': 'Dana Lee'},
                            'seats': {'purchased': 5, 'used': 1, 'available': 4},
                            'stats': {'totalMembers': 1}
                        }
                    }
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 Team members cannot list the team")
    },
    tags=["Team"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_members(request):
    try:
        return Response(invitations.list_members(request.user))
    except ServiceError as e:
        return service_error_response(e)


@extend_schema(
    summary="🚪 Remove team member",
    description="Remove a member from your workspace. Their seat becomes available again.",
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Removed",
            examples=[
                OpenApiExample(
                    'Removed',
                    value={
                        'success': True,
                        'message': 'Team member removed',
                        'removedMember': {'id': 'membership-uuid', 'email': 'analyst@example.com', 'name': 'Sam Ortiz'},
                        'seats': {'purchased': 5, 'used': 0, 'available': 5}
                    }
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 Not your workspace"),
        404: OpenApiResponse(description="🚫 Team member not found")
    },
    tags=["Team"]
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def remove_member(request, member_id):
    owner = request.user
    try:
        removed = invitations.remove_member(owner, member_id)
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'message': 'Team member removed',
        'removedMember': removed,
        'seats': seat_ledger.seat_counts(owner),
    })


@extend_schema(
    summary="👋 Leave team",
    description="Leave the workspace you belong to. The owner gets the seat back and is notified.",
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Left",
            examples=[OpenApiExample('Left', value={'success': True, 'message': "You have left the team"})]
        ),
        400: OpenApiResponse(
            description="❌ Not a team member",
            examples=[OpenApiExample('Not Member', value={'error': 'You are not a member of any team'})]
        )
    },
    tags=["Team"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def leave_team(request):
    try:
        invitations.leave(request.user)
    except ServiceError as e:
        return service_error_response(e)
    return Response({'success': True, 'message': "You have left the team"})


@extend_schema(
    summary="🏢 Workspace",
    description="""
    The workspace from the caller's point of view.

    - **member**: the owner, your membership and your teammates
    - **owner**: seats, team members and pending invitations with `daysRemaining`
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Workspace",
            examples=[
                OpenApiExample(
                    'Owner View',
                    value={
                        'success': True,
                        'role': 'owner',
                        'workspace': {
                            'owner': {'id': 'owner-uuid', 'email': 'dana@example.com', 'name': 'Dana Lee'},
                            'seats': {'purchased': 5, 'used': 2, 'available': 3},
                            'teamSize': 1
                        },
                        'teamMembers': [],
                        'pendingInvitations': [
                            {
                                'id': 'invitation-uuid',
                                'email': 'analyst@example.com',
                                'name': 'Sam Ortiz',
                                'status': 'pending',
                                'sentAt': '2026-04-19T10:00:00Z',
                                'expiresAt': '2026-04-26T10:00:00Z',
                                'daysRemaining': 7
                            }
                        ]
                    }
                )
            ]
        ),
        404: OpenApiResponse(description="🚫 Team member record not found")
    },
    tags=["Team"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def workspace(request):
    try:
        return Response(invitations.workspace_view(request.user))
    except ServiceError as e:
        return service_error_response(e)
