from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('tutoring', '0001_initial'),
    ]

    operations = [
        migrations.AddConstraint(
            model_name='tutoringsession',
            constraint=models.UniqueConstraint(
                condition=models.Q(('status__in', ('pending', 'confirmed'))),
                fields=('student', 'time_slot'),
                name='tutoring_session_one_active_booking',
            ),
        ),
    ]
