from django.urls import path

from .views import CurrentUserView, MessageableUsersView

urlpatterns = [
    path("me/", CurrentUserView.as_view(), name="current_user"),
    path("messageable/", MessageableUsersView.as_view(), name="messageable_users"),
]
