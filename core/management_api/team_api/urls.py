from django.urls import path
from . import views

urlpatterns = [
    path('invite/', views.invite_member, name='team-invite'),
    path('invitations/', views.list_invitations, name='team-invitations'),
    path('invitations/received/', views.received_invitations, name='team-invitations-received'),
    path('invitations/accept-by-token/', views.accept_invitation_by_token, name='team-invitation-accept-by-token'),
    path('invitations/validate/', views.validate_invitation, name='team-invitation-validate'),
    path('invitations/<uuid:invitation_id>/accept/', views.accept_invitation, name='team-invitation-accept'),
    path('invitations/<uuid:invitation_id>/decline/', views.decline_invitation, name='team-invitation-decline'),
    path('invitations/<uuid:invitation_id>/rescind/', views.rescind_invitation, name='team-invitation-rescind'),
    path('invitations/<uuid:invitation_id>/resend/', views.resend_invitation, name='team-invitation-resend'),
    path('members/', views.list_members, name='team-members'),
    path('members/<uuid:member_id>/', views.remove_member, name='team-member-remove'),
    path('leave/', views.leave_team, name='team-leave'),
    path('workspace/', views.workspace, name='team-workspace'),
]
