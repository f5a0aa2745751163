from django.urls import path
from . import views

urlpatterns = [
    path('', views.public_system_settings, name='public-settings'),
]
