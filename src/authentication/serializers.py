"""Serializers for authentication flows (login, profile)."""

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed

from .managers import UserManager

User = get_user_model()


class LoginSerializer(serializers.Serializer):
    """Authenticate a user via email/password using bcrypt verification."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        """Authenticate credentials and attach the user to validated_data."""
        try:
            user = User.objects.select_related("role").get(email=attrs.get("email"))
        except User.DoesNotExist:
            raise AuthenticationFailed("Invalid credentials")

        if not user.is_active:
            raise AuthenticationFailed("User is inactive")

        if not UserManager.verify_password(user, attrs.get("password")):
            raise AuthenticationFailed("Invalid credentials")

        attrs["user"] = user
        return attrs


class UserDetailSerializer(serializers.ModelSerializer):
    """Read-only user profile payload for responses."""

    role = serializers.CharField(source="role_code", allow_null=True)

    class Meta:
        """Expose identity fields, role code and store scope."""
        model = User
        fields = ["id", "email", "full_name", "role", "store_id"]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Patchable fields for /auth/me updates."""

    class Meta:
        model = User
        fields = ["full_name"]
        extra_kwargs = {"full_name": {"required": False, "allow_blank": True}}

    def validate(self, attrs):
        """Reject attempts to change identity or authorization fields here.

        Role changes go through the role-assignment endpoint, which is
        itself privilege-gated.
        """
        forbidden = {"email", "role", "role_id", "store_id"} & set(getattr(self, "initial_data", {}))
        if forbidden:
            raise serializers.ValidationError(
                "Fields cannot be updated via this endpoint: " + ", ".join(sorted(forbidden))
            )
        return super().validate(attrs)
