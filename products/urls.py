"""URL configuration for the shop."""

from django.urls import path, re_path

from . import views

app_name = 'products'

urlpatterns = [
    # Search page; ?autocomplete returns JSON for the search bar
    path('search', views.search, name='search'),
    # Teaser fragment (?type=object&id=N)
    path('shop/teaser', views.teaser, name='teaser'),
    # /shop/<category path>/<product slug>~p<id>
    re_path(
        r'^shop/(?P<path>.*?)(?P<productname>[\w-]+)~p(?P<product_id>\d+)$',
        views.detail,
        name='detail',
    ),
    # /shop/<parent path>/<category slug>~c<id>
    re_path(
        r'^shop/(?P<path>.*?)(?P<categoryname>[\w-]+)~c(?P<category_id>\d+)$',
        views.listing,
        name='listing',
    ),
]
