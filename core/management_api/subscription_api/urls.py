from django.urls import path
from . import views

urlpatterns = [
    path('status/', views.subscription_status, name='subscription-status'),
    path('upgrade/', views.upgrade_subscription, name='subscription-upgrade'),
    path('cancel/', views.cancel_subscription, name='subscription-cancel'),
    path('start-trial/', views.start_trial, name='subscription-start-trial'),
    path('create-checkout/', views.create_checkout_session, name='subscription-create-checkout'),
    path('billing-history/', views.billing_history, name='subscription-billing-history'),
]
