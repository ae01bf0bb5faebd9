from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    barangay_name = serializers.CharField(source='barangay.name', read_only=True, default=None)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'role',
            'barangay',
            'barangay_name',
            'phone',
            'profile_picture',
            'date_joined',
        ]
        read_only_fields = ['role', 'barangay', 'date_joined']


class UpdateProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'phone', 'profile_picture']
