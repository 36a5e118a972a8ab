from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import views

app_name = 'accounts'

urlpatterns = [
    # ========================================
    # REGISTRATION & JWT TOKENS
    # ========================================
    path('register/', views.register, name='register'),
    path('token/', views.LoginView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # ========================================
    # OWN PROFILE
    # ========================================
    path('profile/', views.my_profile, name='my_profile'),
    path('profile/availability/', views.toggle_availability, name='toggle_availability'),
    path('profile/donations/', views.record_my_donation, name='record_my_donation'),
]
