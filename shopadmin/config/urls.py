"""
URL configuration for the shopadmin project.

    /admin/                  Django admin
    /accounts/               session login/logout for the dashboard
    /api/auth/               JWT login/refresh
    /api/stores/             store endpoints
    /api/<store_id>/...      store-scoped catalog endpoints
    /                        dashboard screens
"""
from django.contrib import admin
from django.contrib.auth import views as auth_views
from django.urls import path, include

admin.site.site_header = "Store Admin Panel"
admin.site.site_title = "Store Admin Portal"
admin.site.index_title = "Welcome to the Store Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('accounts/login/', auth_views.LoginView.as_view(), name='login'),
    path('accounts/logout/', auth_views.LogoutView.as_view(), name='logout'),
    path('api/', include('shopadmin.core.urls')),
    path('api/', include('shopadmin.stores.urls')),
    path('api/<int:store_id>/', include('shopadmin.catalog.urls')),
    path('', include('shopadmin.dashboard.urls')),
]
