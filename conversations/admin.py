from django.contrib import admin

from .models import LastVisibleMessage, Message, Thread, ThreadParticipant, ThreadReadMarker


class ThreadParticipantInline(admin.TabularInline):
    model = ThreadParticipant
    extra = 0
    readonly_fields = ['joined_at']


@admin.register(Thread)
class ThreadAdmin(admin.ModelAdmin):
    list_display = ['id', 'thread_type', 'project', 'title', 'updated_at', 'last_message_at']
    list_filter = ['thread_type', 'updated_at']
    search_fields = ['title', 'participant_key', 'project__title']
    readonly_fields = ['participant_key', 'created_at', 'updated_at', 'last_message_at', 'last_activity_at']
    inlines = [ThreadParticipantInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'thread', 'sender_id', 'content_preview', 'sent_at', 'approval_status']
    list_filter = ['requires_approval', 'approval_status', 'sent_at']
    search_fields = ['content', 'sender_id']
    readonly_fields = ['sent_at', 'moderated_by', 'moderated_at']

    @admin.display(description='Content Preview')
    def content_preview(self, obj):
        return obj.content[:50] + "..." if len(obj.content) > 50 else obj.content


@admin.register(LastVisibleMessage)
class LastVisibleMessageAdmin(admin.ModelAdmin):
    list_display = ['thread', 'audience', 'message']
    search_fields = ['audience']


@admin.register(ThreadReadMarker)
class ThreadReadMarkerAdmin(admin.ModelAdmin):
    list_display = ['thread', 'user_id', 'last_read_at']
    search_fields = ['user_id']
