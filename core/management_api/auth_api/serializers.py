from rest_framework import serializers
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from core.models import User


class UserRegistrationSerializer(serializers.Serializer):
    """Input of the registration endpoint. Account creation happens in core.services.accounts"""
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    def validate_email(self, value):
        return value.strip().lower()

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({
                'password_confirm': 'Passwords do not match.'
            })
        return attrs


class EmailLoginSerializer(serializers.Serializer):
    """Email and password login"""
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        email = attrs['email'].strip().lower()
        user = User.objects.filter(email=email).first()

        if user is not None and user.account_status == 'pending_deletion':
            raise serializers.ValidationError({
                'non_field_errors': ['This account is scheduled for deletion. Contact support to restore it.']
            })
        if user is not None and not user.is_active:
            raise serializers.ValidationError({
                'non_field_errors': ['Your account has been deactivated. Please contact support.']
            })

        user = authenticate(email=email, password=attrs['password'])
        if not user:
            raise serializers.ValidationError({
                'non_field_errors': ['Invalid email or password.']
            })

        attrs['user'] = user
        return attrs


class AuthUserSerializer(serializers.ModelSerializer):
    """Minimal profile returned with a token"""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name',
            'subscription_status', 'is_admin', 'is_team_member',
        ]
        read_only_fields = fields
