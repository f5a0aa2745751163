from django.urls import path
from . import views

urlpatterns = [
    path('', views.list_notifications, name='notification-list'),
    path('read-all/', views.mark_all_notifications_read, name='notification-read-all'),
    path('<uuid:notification_id>/read/', views.mark_notification_read, name='notification-read'),
    path('<uuid:notification_id>/', views.delete_notification, name='notification-delete'),
]
