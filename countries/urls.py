from django.urls import path
from . import views


urlpatterns = [
    # GET /status → last refresh run summary
    path('status', views.get_status, name='get_status'),
    # POST /countries/refresh → fetch feeds and upsert all countries
    path('countries/refresh', views.refresh_countries, name='refresh_countries'),

    # GET /countries/image → summary image; must precede the <name> route
    path('countries/image', views.get_summary_image, name='get_summary_image'),
    # GET /countries → list countries (region, currency, sort)
    path('countries', views.list_countries, name='list_countries'),
    path('countries/', views.list_countries),

    # GET or DELETE /countries/<name> → country detail or delete
    path('countries/<str:name>', views.country_detail, name='country_detail'),
]
