from django.urls import path
from . import views

urlpatterns = [
    path('check-status/', views.check_status, name='check-status'),
    path('verify-pin/', views.verify_pin, name='verify-pin'),
    path('dashboard/', views.dashboard, name='dashboard'),
    path('settings/', views.system_settings, name='system-settings'),
    path('users/', views.AdminUserListView.as_view(), name='user-list'),
    path('users/bulk-mark-deletion/', views.bulk_mark_deletion, name='bulk-mark-deletion'),
    path('users/<uuid:user_id>/subscription/', views.update_user_subscription, name='user-subscription'),
    path('users/<uuid:user_id>/restore/', views.restore_user, name='user-restore'),
    path('users/<uuid:user_id>/admin/', views.set_user_admin, name='user-admin'),
    path('users/<uuid:user_id>/delete-now/', views.delete_user_now, name='user-delete-now'),
    path('trigger-expirations/', views.trigger_expirations, name='trigger-expirations'),
    path('logs/', views.AdminLogListView.as_view(), name='log-list'),
]
