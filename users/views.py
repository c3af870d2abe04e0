from rest_framework.generics import ListAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from taskhub.permissions import permissions_for_role

from .directory import messageable_users
from .serializers import UserSerializer


class UserPagination(PageNumberPagination):
    page_size = 30
    page_size_query_param = "page_size"
    max_page_size = 100


class MessageableUsersView(ListAPIView):
    """Users the current user can start a direct conversation with"""

    serializer_class = UserSerializer
    pagination_class = UserPagination

    def get_queryset(self):
        queryset = messageable_users(self.request.user)

        q = self.request.GET.get("q", "").strip()
        if len(q) >= 2:
            queryset = queryset.filter(user_name__icontains=q)
        return queryset


class CurrentUserView(APIView):
    """Identity and messaging permissions of the authenticated user"""

    def get(self, request):
        actor = request.user
        return Response({
            "user_id": actor.user_id,
            "user_name": actor.display_name,
            "role": actor.role,
            "permissions": permissions_for_role(actor.role),
        })
