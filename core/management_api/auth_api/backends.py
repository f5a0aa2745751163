from django.contrib.auth.backends import BaseBackend
from django.contrib.auth import get_user_model

User = get_user_model()


class EmailBackend(BaseBackend):
    """
    Authentication backend that uses email instead of username.
    Accounts scheduled for deletion cannot log in.
    """

    def authenticate(self, request, email=None, password=None, **kwargs):
        if email is None or password is None:
            return None

        try:
            user = User.objects.get(email=email.strip().lower())
        except User.DoesNotExist:
            # Run the default password hasher once to reduce the timing
            # difference between an existing and a nonexistent user
            User().set_password(password)
            return None

        if user.check_password(password) and user.can_login():
            return user

        return None

    def get_user(self, user_id):
        """Get user by ID for session authentication"""
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
