from django.urls import path
from rest_framework.routers import DefaultRouter
from .views import (
    RegisterAPIView,
    LoginAPIView,
    VerifyTokenAPIView,
    RefreshAPIView,
    LogoutAPIView,
    VerifyEmailAPIView,
    GoogleAuthAPIView,
    GoogleCallbackAPIView,
    ExamViewSet,
    QuestionViewSet,
    ResultViewSet,
    UserViewSet,
)

router = DefaultRouter()

router.register(r"exams", ExamViewSet, basename="exam")
router.register(r"questions", QuestionViewSet, basename="question")
router.register(r"results", ResultViewSet, basename="result")
router.register(r"users", UserViewSet, basename="user")



urlpatterns = [
    path('auth/register/', RegisterAPIView.as_view(), name='api_register'),
    path('auth/login/', LoginAPIView.as_view(), name='api_login'),
    path('auth/verify/', VerifyTokenAPIView.as_view(), name='api_verify'),
    path('auth/refresh/', RefreshAPIView.as_view(), name='api_refresh'),
    path('auth/logout/', LogoutAPIView.as_view(), name='api_logout'),
    path(
        'auth/verify-email/',
        VerifyEmailAPIView.as_view(),
        name='api_verify_email'
    ),
    path('auth/google/', GoogleAuthAPIView.as_view(), name='api_google'),
    path('auth/google/callback/', GoogleCallbackAPIView.as_view(), name='api_google_callback'),
]

urlpatterns += router.urls
