import logging

from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from accounts.decorators import CustomTokenObtainPairSerializer, role_required
from accounts.serializers import RegisterSerializer, UserProfileSerializer

logger = logging.getLogger(__name__)


# -----------------------------
# HELPER: JWT TOKEN GENERATOR
# -----------------------------
def get_tokens_for_user(user):
    """
    Generate JWT tokens and embed role in payload
    """
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


# -----------------------------
# REGISTER API
# -----------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """
    Registers a donor or receiver, fills in the profile and returns JWT tokens
    """
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()

    logger.info(f"New {user.role} registered: {user.username}")
    return Response({
        'user': UserProfileSerializer(user.profile).data,
        'tokens': get_tokens_for_user(user),
    }, status=status.HTTP_201_CREATED)


class LoginView(TokenObtainPairView):
    """Username/password login, token carries the role claim"""
    serializer_class = CustomTokenObtainPairSerializer


# -----------------------------
# OWN PROFILE
# -----------------------------
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def my_profile(request):
    profile = request.user.profile

    if request.method == 'PATCH':
        serializer = UserProfileSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    return Response(UserProfileSerializer(profile).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@role_required('donor')
def toggle_availability(request):
    """Donor switches themselves in or out of request matching"""
    profile = request.user.profile
    if 'is_available' in request.data:
        profile.is_available = str(request.data['is_available']).lower() in ('1', 'true', 'yes', 'on')
    else:
        profile.is_available = not profile.is_available
    profile.save(update_fields=['is_available', 'updated_at'])

    logger.info(f"{request.user.username} availability -> {profile.is_available}")
    return Response({'is_available': profile.is_available})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@role_required('donor')
def record_my_donation(request):
    """Donor logs a donation they made (defaults to today)"""
    profile = request.user.profile
    on = None
    if request.data.get('date'):
        on = serializers.DateField().run_validation(request.data['date'])
    profile.record_donation(on=on)
    return Response(UserProfileSerializer(profile).data)
