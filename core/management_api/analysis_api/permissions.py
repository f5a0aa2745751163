from rest_framework import permissions

from core.services.subscription import effective_status, get_tier_features, has_paid_access


def can_save_analyses(user):
    """Saved analyses need a tier with saved access, or a seat in someone's team"""
    if user.is_admin or user.is_team_member:
        return True
    return get_tier_features(effective_status(user))['can_view_saved']


def can_create_groups(user):
    return user.is_admin or user.is_team_member or has_paid_access(user)


def can_edit(user, obj):
    """Authors edit their own rows. Workspace owners also edit their members' rows"""
    author = obj.user
    return author.pk == user.pk or (
        author.is_team_member and author.team_workspace_owner_id == user.pk
    )


class SavedAnalysisPermission(permissions.BasePermission):
    """
    Saved analyses
    - Reading and writing need saved access (premium, enterprise, team member, admin)
    - Rows are visible to the whole workspace
    - Only the author or the workspace owner may change or delete a row
    """
    message = "Saving analyses requires a premium subscription or team membership"

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if getattr(view, 'action', None) == 'calculate':
            return True
        return can_save_analyses(request.user)

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return can_edit(request.user, obj)


class AnalysisGroupPermission(permissions.BasePermission):
    """
    Analysis groups
    - Creating needs premium, enterprise or team membership
    - Groups are changed or deleted by their creator only
    """
    message = "Creating groups requires a premium subscription or team membership"

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method == 'POST':
            return can_create_groups(request.user)
        return True

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.user_id == request.user.pk
