import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('courses', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TimeSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('teacher_name', models.CharField(blank=True, max_length=100, verbose_name='老師姓名')),
                ('date', models.DateField(verbose_name='日期')),
                ('time', models.TimeField(verbose_name='開始時間')),
                ('duration', models.PositiveIntegerField(default=60, verbose_name='時長(分鐘)')),
                ('tutoring_type', models.CharField(choices=[('individual', '個人輔導'), ('group', '團體輔導')], default='individual', max_length=20, verbose_name='輔導性質')),
                ('max_students', models.PositiveIntegerField(default=1, verbose_name='人數上限')),
                ('current_students', models.PositiveIntegerField(default=0, verbose_name='已預約人數')),
                ('status', models.CharField(choices=[('available', '可預約'), ('full', '已額滿'), ('cancelled', '已取消')], default='available', max_length=20, verbose_name='狀態')),
                ('subject_restriction', models.CharField(blank=True, max_length=50, verbose_name='科目限制')),
                ('course_restrictions', models.JSONField(blank=True, default=list, verbose_name='課程限制')),
                ('tutoring_method', models.CharField(choices=[('online', '線上輔導'), ('physical', '實體輔導')], default='online', max_length=20, verbose_name='輔導方式')),
                ('location', models.CharField(blank=True, max_length=100, verbose_name='地點')),
                ('notes', models.TextField(blank=True, verbose_name='備註')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='建立時間')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新時間')),
                ('teacher', models.ForeignKey(limit_choices_to={'role': 'teacher'}, on_delete=django.db.models.deletion.CASCADE, related_name='time_slots', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('date', 'time'),
                'constraints': [models.CheckConstraint(condition=models.Q(('current_students__lte', models.F('max_students'))), name='time_slot_within_capacity')],
            },
        ),
        migrations.CreateModel(
            name='TutoringSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('student_name', models.CharField(blank=True, max_length=100, verbose_name='學生姓名')),
                ('student_account', models.CharField(blank=True, max_length=150, verbose_name='學生帳號')),
                ('teacher_name', models.CharField(blank=True, max_length=100, verbose_name='老師姓名')),
                ('subject', models.CharField(blank=True, max_length=50, verbose_name='科目')),
                ('course_name', models.CharField(blank=True, max_length=100, verbose_name='課程名稱')),
                ('date', models.DateField(verbose_name='日期')),
                ('time', models.TimeField(verbose_name='開始時間')),
                ('duration', models.PositiveIntegerField(default=60, verbose_name='時長(分鐘)')),
                ('status', models.CharField(choices=[('pending', '待確認'), ('confirmed', '已確認'), ('completed', '已完成'), ('cancelled', '已取消')], default='pending', max_length=20, verbose_name='狀態')),
                ('notes', models.TextField(blank=True, verbose_name='備註')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='建立時間')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新時間')),
                ('course', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tutoring_sessions', to='courses.course')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tutoring_sessions', to=settings.AUTH_USER_MODEL)),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='taught_sessions', to=settings.AUTH_USER_MODEL)),
                ('time_slot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sessions', to='tutoring.timeslot')),
            ],
            options={
                'ordering': ('-created_at',),
            },
        ),
    ]
