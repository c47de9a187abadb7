# Bootstrap the fixed role rows

from django.db import migrations

ROLE_NAMES = ['admin', 'doctor', 'assistant', 'patient']


def create_roles(apps, schema_editor):
    """
    Create the fixed roles if they don't exist.
    Idempotent - safe to run multiple times.
    """
    Role = apps.get_model('authz', 'Role')
    for name in ROLE_NAMES:
        Role.objects.get_or_create(name=name)


def delete_unused_roles(apps, schema_editor):
    """Reverse migration - only deletes roles with no users assigned."""
    Role = apps.get_model('authz', 'Role')
    UserRole = apps.get_model('authz', 'UserRole')
    for role in Role.objects.filter(name__in=ROLE_NAMES):
        if not UserRole.objects.filter(role=role).exists():
            role.delete()


class Migration(migrations.Migration):

    dependencies = [
        ('authz', '0002_clinic_assistant'),
    ]

    operations = [
        migrations.RunPython(create_roles, delete_unused_roles),
    ]
