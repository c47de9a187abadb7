# Clinic assistant assignment (needs core.Clinic, which itself needs authz.User)

import uuid
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('authz', '0001_initial'),
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ClinicAssistant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assistant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='clinic_assignments', to='authz.user')),
                ('clinic', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assistant_assignments', to='core.clinic')),
            ],
            options={
                'verbose_name': 'Clinic Assistant',
                'verbose_name_plural': 'Clinic Assistants',
                'db_table': 'clinic_assistant',
                'unique_together': {('assistant', 'clinic')},
                'indexes': [models.Index(fields=['assistant'], name='idx_clinic_assistant_user')],
            },
        ),
    ]
