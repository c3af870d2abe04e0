from rest_framework import serializers

from .models import Message, Thread


class ThreadSerializer(serializers.ModelSerializer):
    project_id = serializers.IntegerField(read_only=True, allow_null=True)
    participants = serializers.SerializerMethodField()

    class Meta:
        model = Thread
        fields = ['id', 'thread_type', 'project_id', 'title', 'participants',
                  'created_at', 'updated_at', 'last_message_at', 'last_activity_at']
        read_only_fields = fields

    def get_participants(self, obj):
        return [{'user_id': p.user_id, 'role': p.role} for p in obj.participants.all()]


class MessageSerializer(serializers.ModelSerializer):
    thread_id = serializers.IntegerField(read_only=True)
    sender_name = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ['id', 'thread_id', 'sender_id', 'sender_name', 'content', 'sent_at',
                  'requires_approval', 'approval_status', 'moderated_by', 'moderated_at']
        read_only_fields = fields

    def get_sender_name(self, obj):
        names = self.context.get('sender_names') or {}
        return names.get(obj.sender_id) or f"User {obj.sender_id}"


class PendingMessageSerializer(MessageSerializer):
    """Moderation queue entry with the thread it belongs to"""
    thread_type = serializers.CharField(source='thread.thread_type', read_only=True)
    project_id = serializers.IntegerField(source='thread.project_id', read_only=True, allow_null=True)

    class Meta(MessageSerializer.Meta):
        fields = MessageSerializer.Meta.fields + ['thread_type', 'project_id']
        read_only_fields = fields


class ConversationSerializer(serializers.Serializer):
    """Inbox entry built by the conversation aggregator"""
    thread_id = serializers.IntegerField(source='thread.pk')
    thread_type = serializers.CharField(source='thread.thread_type')
    project_id = serializers.IntegerField(source='thread.project_id', allow_null=True)
    title = serializers.CharField()
    participants = serializers.ListField(child=serializers.DictField())
    last_message = serializers.SerializerMethodField()
    last_message_at = serializers.DateTimeField(allow_null=True)
    updated_at = serializers.DateTimeField(source='thread.updated_at')
    unread_count = serializers.IntegerField()

    def get_last_message(self, obj):
        """Get only the last message preview (not full message)"""
        message = obj.last_message
        if message is None:
            return None
        return {
            'id': message.pk,
            'sender_id': message.sender_id,
            'content': obj.last_message_snippet,
            'sent_at': serializers.DateTimeField().to_representation(message.sent_at),
            'approval_status': message.approval_status,
        }


class ResolveThreadSerializer(serializers.Serializer):
    thread_type = serializers.ChoiceField(choices=Thread.THREAD_TYPE_CHOICES)
    project_id = serializers.IntegerField(required=False, allow_null=True)
    participant_ids = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False, default=list
    )


class MessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=Message.DECISIONS)
