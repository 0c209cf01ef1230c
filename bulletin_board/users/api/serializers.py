from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from bulletin_board.users.models import User
from bulletin_board.users.tokens import token_for_user


class UserSerializer(serializers.ModelSerializer):
    """Public view of a user, as listed for picking a chat peer."""

    class Meta:
        model = User
        fields = ["id", "username"]
        read_only_fields = fields


class UserRegistrationSerializer(serializers.ModelSerializer):
    password = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        style={"input_type": "password"},
    )

    class Meta:
        model = User
        fields = ["id", "username", "password"]
        read_only_fields = ["id"]

    def validate(self, attrs):
        candidate = User(username=attrs.get("username", ""))
        validate_password(attrs["password"], user=candidate)
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data["username"],
            password=validated_data["password"],
        )


class ChatTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Issue a token pair whose claims include the username."""

    @classmethod
    def get_token(cls, user):
        return token_for_user(user)
