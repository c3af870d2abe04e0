from django.contrib import admin
from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'client', 'created_at']
    search_fields = ['title', 'client__user_name']
    filter_horizontal = ['freelancers']
