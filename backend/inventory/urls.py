from django.urls import path

from . import views

urlpatterns = [
    # Authentication
    path('auth/login/', views.login, name='auth-login'),
    path('auth/refresh/', views.refresh, name='auth-refresh'),
    path('auth/logout/', views.logout, name='auth-logout'),
    path('auth/me/', views.me, name='auth-me'),

    # Stock (read-only)
    path('stock/', views.StockItemListView.as_view(), name='stock-list'),
    path('stock/low/', views.low_stock, name='stock-low'),
    path('stock/summary/', views.stock_summary, name='stock-summary'),
    path('stock/<int:pk>/', views.StockItemDetailView.as_view(), name='stock-detail'),

    # Orders
    path('orders/', views.OrderListCreateView.as_view(), name='order-list'),
    path('orders/summary/', views.order_summary, name='order-summary'),
    path('orders/<int:pk>/', views.OrderDetailView.as_view(), name='order-detail'),
    path('orders/<int:order_id>/status/', views.order_status, name='order-status'),
    path('orders/<int:order_id>/payments/', views.order_payment, name='order-payment'),
    path('orders/<int:order_id>/issue/', views.issue_stock, name='order-issue'),

    # Issuances
    path('issuances/', views.IssuanceListView.as_view(), name='issuance-list'),
    path('issuances/<int:pk>/', views.IssuanceDetailView.as_view(), name='issuance-detail'),
    path('issuances/<int:issuance_id>/return/', views.return_issuance, name='issuance-return'),
    path('issuances/<int:issuance_id>/damage/', views.damage_issuance, name='issuance-damage'),
]
