from django.urls import path
from . import views

urlpatterns = [
    path('info/', views.seat_info, name='seat-info'),
    path('purchase/', views.purchase_seats, name='seat-purchase'),
    path('add/', views.add_seats, name='seat-add'),
    path('remove/', views.remove_seats, name='seat-remove'),
]
