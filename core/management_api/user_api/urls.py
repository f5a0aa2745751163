from django.urls import path
from . import views

urlpatterns = [
    path('me/', views.me, name='user-me'),
    path('profile/', views.update_profile, name='user-profile'),
    path('is-admin/', views.is_admin, name='user-is-admin'),
    path('delete/', views.delete_account, name='user-delete'),
]
