from django.urls import path

from . import views

app_name = 'conversations'

urlpatterns = [
    path('conversations/', views.ConversationListView.as_view(), name='conversation-list'),
    path('conversations/activity/', views.ConversationActivityView.as_view(), name='conversation-activity'),
    path('threads/resolve/', views.ThreadResolveView.as_view(), name='thread-resolve'),
    path('threads/<int:thread_id>/', views.ThreadDetailView.as_view(), name='thread-detail'),
    path('threads/<int:thread_id>/messages/', views.ThreadMessagesView.as_view(), name='thread-messages'),
    path('threads/<int:thread_id>/read/', views.MarkThreadReadView.as_view(), name='thread-read'),
    path('projects/<int:project_id>/threads/', views.ProjectThreadsView.as_view(), name='project-threads'),
    path('messages/pending/', views.PendingMessagesView.as_view(), name='pending-messages'),
    path('messages/<int:message_id>/decision/', views.MessageDecisionView.as_view(), name='message-decision'),
    path('messages/<int:message_id>/', views.MessageDeleteView.as_view(), name='message-delete'),
]
