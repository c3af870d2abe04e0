"""
URL configuration for the taskhub project.

The messaging API lives at the root (`conversations/`, `threads/`, `messages/`,
`projects/<id>/threads/`); `users/` serves the identity helpers.
"""
from django.contrib import admin
from django.urls import include, path

from . import views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('ping/', views.PingView.as_view(), name='ping'),
    path('users/', include('users.urls')),
    path('', include('conversations.urls')),
]
