import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Thread',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('thread_type', models.CharField(choices=[('direct', 'Direct'), ('project_client_admin_freelancer', 'Client, Admin & Freelancer'), ('project_admin_client', 'Admin & Client'), ('project_admin_freelancer', 'Admin & Freelancer')], max_length=40)),
                ('participant_key', models.CharField(blank=True, max_length=1024, null=True)),
                ('title', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_message_at', models.DateTimeField(blank=True, null=True)),
                ('project', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='threads', to='projects.project')),
            ],
            options={
                'db_table': 'conversations_thread',
                'ordering': ['-updated_at', '-id'],
                'indexes': [models.Index(fields=['updated_at'], name='conv_thread_updated_idx')],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('project__isnull', False)), fields=('project', 'thread_type'), name='unique_project_thread_type'),
                    models.UniqueConstraint(condition=models.Q(('thread_type', 'direct')), fields=('participant_key',), name='unique_direct_participant_set'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sender_id', models.CharField(max_length=100)),
                ('content', models.TextField()),
                ('sent_at', models.DateTimeField()),
                ('requires_approval', models.BooleanField(default=False)),
                ('approval_status', models.CharField(blank=True, choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], max_length=10, null=True)),
                ('moderated_by', models.CharField(blank=True, max_length=100, null=True)),
                ('moderated_at', models.DateTimeField(blank=True, null=True)),
                ('thread', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='conversations.thread')),
            ],
            options={
                'db_table': 'conversations_message',
                'ordering': ['sent_at', 'id'],
                'indexes': [
                    models.Index(fields=['thread', 'sent_at'], name='conv_message_thread_sent_idx'),
                    models.Index(fields=['approval_status'], name='conv_message_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ThreadParticipant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(max_length=100)),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('client', 'Client'), ('freelancer', 'Freelancer')], max_length=20)),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('thread', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='conversations.thread')),
            ],
            options={
                'db_table': 'conversations_threadparticipant',
                'indexes': [models.Index(fields=['user_id'], name='conv_participant_user_idx')],
                'constraints': [models.UniqueConstraint(fields=('thread', 'user_id'), name='unique_thread_participant')],
            },
        ),
        migrations.CreateModel(
            name='LastVisibleMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('audience', models.CharField(max_length=120)),
                ('message', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='conversations.message')),
                ('thread', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='snippets', to='conversations.thread')),
            ],
            options={
                'db_table': 'conversations_lastvisiblemessage',
                'constraints': [models.UniqueConstraint(fields=('thread', 'audience'), name='unique_thread_audience')],
            },
        ),
        migrations.CreateModel(
            name='ThreadReadMarker',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(max_length=100)),
                ('last_read_at', models.DateTimeField()),
                ('thread', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='read_markers', to='conversations.thread')),
            ],
            options={
                'db_table': 'conversations_threadreadmarker',
                'constraints': [models.UniqueConstraint(fields=('thread', 'user_id'), name='unique_thread_read_marker')],
            },
        ),
    ]
