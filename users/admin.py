from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = (
        "user_name",
        "user_id",
        "role",
        "email",
        "created_at",
    )
    list_filter = ("role",)
    search_fields = ("user_id", "user_name", "email")
