"""
DOS Django adapter URL routing.
"""

from django.urls import path

from adapters.django_api import views


urlpatterns = [
    path("stock/report", views.stock_report_view),
    path("stock/low", views.stock_low_view),
    path("stock/value", views.stock_value_view),
    path("stock/negative", views.stock_negative_view),
    path("stock/products", views.stock_product_totals_view),
    path("stock/locations/<str:location_id>", views.stock_location_view),
    path("stock/products/<str:product_id>", views.stock_product_view),
]
