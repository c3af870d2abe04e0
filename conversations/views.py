from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from users.directory import display_names

from .aggregator import ConversationAggregator
from .exceptions import ValidationError
from .moderation import ModerationEngine
from .registry import ThreadRegistry
from .serializers import (
    ConversationSerializer,
    DecisionSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    PendingMessageSerializer,
    ResolveThreadSerializer,
    ThreadSerializer,
)
from .store import MessageStore

registry = ThreadRegistry()
aggregator = ConversationAggregator(registry)
moderation = ModerationEngine(aggregator)
store = MessageStore(registry, moderation, aggregator)


def _sender_context(messages):
    return {'sender_names': display_names({m.sender_id for m in messages})}


class ConversationListView(APIView):
    """List all conversations for the authenticated user"""

    def get(self, request):
        conversations = aggregator.list_conversations_for(request.user)
        serializer = ConversationSerializer(conversations, many=True)

        return Response({
            'user_id': request.user.user_id,
            'results': serializer.data,
            'total_count': len(conversations)
        })


class ConversationActivityView(APIView):
    """Threads that changed since the given timestamp"""

    def get(self, request):
        since_param = request.query_params.get('since')
        if not since_param:
            raise ValidationError("since query parameter is required")

        since = parse_datetime(since_param)
        if since is None:
            raise ValidationError(f"Invalid since timestamp: {since_param}")
        if timezone.is_naive(since):
            since = timezone.make_aware(since)

        threads = aggregator.activity_since(request.user, since)
        return Response({
            'threads': [
                {
                    'thread_id': thread.pk,
                    'updated_at': thread.updated_at,
                    'last_activity_at': thread.last_activity_at,
                }
                for thread in threads
            ],
            'server_time': timezone.now()
        })


class ThreadResolveView(APIView):
    """Find the thread for a conversation scope, creating it on first use"""

    def post(self, request):
        serializer = ResolveThreadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        thread, created = registry.resolve_or_create_thread(
            request.user,
            data['thread_type'],
            project_id=data.get('project_id'),
            participant_hint=data.get('participant_ids'),
        )

        return Response({
            'message': 'Thread created successfully' if created else 'Thread found',
            'thread': ThreadSerializer(thread).data,
            'is_new': created
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class ThreadDetailView(APIView):
    def get(self, request, thread_id):
        thread = registry.get_thread(request.user, thread_id)
        return Response(ThreadSerializer(thread).data)


class ThreadMessagesView(APIView):
    """
    Get messages for a specific thread and create new messages
    """

    def get(self, request, thread_id):
        messages = store.list_messages(request.user, thread_id, request.query_params.get('limit'))
        serializer = MessageSerializer(messages, many=True, context=_sender_context(messages))

        return Response({
            'thread_id': thread_id,
            'messages': serializer.data,
            'count': len(messages)
        })

    def post(self, request, thread_id):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = store.append_message(request.user, thread_id, serializer.validated_data['content'])

        return Response(
            MessageSerializer(message, context=_sender_context([message])).data,
            status=status.HTTP_201_CREATED
        )


class MarkThreadReadView(APIView):
    def post(self, request, thread_id):
        marker = aggregator.mark_read(request.user, thread_id)
        return Response({
            'thread_id': thread_id,
            'last_read_at': marker.last_read_at
        })


class ProjectThreadsView(APIView):
    """The project threads the user may take part in, created or not"""

    def get(self, request, project_id):
        project, threads = registry.project_threads(request.user, project_id)

        return Response({
            'project_id': project.pk,
            'project_title': project.title,
            'threads': {
                thread_type: ThreadSerializer(thread).data if thread is not None else None
                for thread_type, thread in threads.items()
            }
        })


class MessageDecisionView(APIView):
    def post(self, request, message_id):
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = moderation.decide(request.user, message_id, serializer.validated_data['decision'])
        return Response(MessageSerializer(message, context=_sender_context([message])).data)


class MessageDeleteView(APIView):
    def delete(self, request, message_id):
        moderation.delete_message(request.user, message_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PendingMessagesView(APIView):
    """Moderation queue, optionally narrowed to one project"""

    def get(self, request):
        project_id = request.query_params.get('project_id')
        if project_id not in (None, ""):
            try:
                project_id = int(project_id)
            except ValueError:
                raise ValidationError(f"Invalid project_id: {project_id}")
        else:
            project_id = None

        messages = list(moderation.pending_messages(request.user, project_id))
        serializer = PendingMessageSerializer(messages, many=True, context=_sender_context(messages))

        return Response({
            'results': serializer.data,
            'total_count': len(messages)
        })
