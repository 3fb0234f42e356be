"""Serializers for role and privilege administration."""

from rest_framework import serializers

from .models import Privilege, PrivilegeCategory, Role


class PrivilegeSerializer(serializers.ModelSerializer):
    """Read representation of a privilege."""

    class Meta:
        model = Privilege
        fields = ["id", "code", "name", "description", "category", "is_active", "created_at", "updated_at"]
        read_only_fields = fields


class PrivilegeSummarySerializer(serializers.ModelSerializer):
    """Compact privilege payload embedded in role responses."""

    class Meta:
        model = Privilege
        fields = ["id", "name", "code", "category", "description"]
        read_only_fields = fields


class PrivilegeCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500)
    category = serializers.ChoiceField(choices=PrivilegeCategory.choices)


class PrivilegeUpdateSerializer(serializers.Serializer):
    """Name, description and category are editable; the code is not."""

    name = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(max_length=500, required=False)
    category = serializers.ChoiceField(choices=PrivilegeCategory.choices, required=False)

    def validate(self, attrs):
        if "code" in getattr(self, "initial_data", {}):
            raise serializers.ValidationError("Privilege code cannot be changed")
        return attrs


class RoleSerializer(serializers.ModelSerializer):
    """Read representation of a role with its privileges resolved."""

    privileges = PrivilegeSummarySerializer(many=True, read_only=True)
    privilege_count = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = [
            "id",
            "code",
            "name",
            "description",
            "privileges",
            "privilege_count",
            "is_active",
            "is_system",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    @staticmethod
    def get_privilege_count(obj) -> int:
        return len(obj.privileges.all())


class RoleCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500)
    privilege_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)


class RoleUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(max_length=500, required=False)
    privilege_ids = serializers.ListField(child=serializers.IntegerField(), required=False)

    def validate(self, attrs):
        """Reject attempts to change immutable role fields explicitly."""
        immutable = {"code", "is_system"} & set(getattr(self, "initial_data", {}))
        if immutable:
            raise serializers.ValidationError(
                "Fields cannot be updated: " + ", ".join(sorted(immutable))
            )
        return attrs


class UserRoleSerializer(serializers.Serializer):
    role_id = serializers.IntegerField()


__all__ = [
    "PrivilegeCreateSerializer",
    "PrivilegeSerializer",
    "PrivilegeSummarySerializer",
    "PrivilegeUpdateSerializer",
    "RoleCreateSerializer",
    "RoleSerializer",
    "RoleUpdateSerializer",
    "UserRoleSerializer",
]
