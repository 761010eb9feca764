from django.urls import path

from . import views

app_name = 'dashboard'

urlpatterns = [
    path('', views.setup, name='setup'),
    path('<int:store_id>/', views.overview, name='overview'),
    path('<int:store_id>/settings/', views.store_settings, name='store_settings'),
    path('<int:store_id>/settings/delete/', views.store_delete, name='store_delete'),
    path('<int:store_id>/uploads/', views.upload, name='upload'),
    path('<int:store_id>/<slug:collection>/', views.entity_list, name='entity_list'),
    path('<int:store_id>/<slug:collection>/new/', views.entity_form, name='entity_create'),
    path('<int:store_id>/<slug:collection>/<int:record_id>/', views.entity_form, name='entity_edit'),
    path('<int:store_id>/<slug:collection>/<int:record_id>/delete/', views.entity_delete, name='entity_delete'),
]
