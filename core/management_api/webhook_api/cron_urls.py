from django.urls import path
from . import views

urlpatterns = [
    path('delete-expired-accounts/', views.cron_delete_expired_accounts, name='delete-expired-accounts'),
]
