from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, verbose_name='課程名稱')),
                ('course_code', models.CharField(max_length=20, verbose_name='課程代碼')),
                ('subject', models.CharField(blank=True, max_length=50, verbose_name='科目')),
                ('grades', models.JSONField(blank=True, default=list, verbose_name='適用年級')),
                ('teacher_ids', models.JSONField(blank=True, default=list, verbose_name='授課老師')),
                ('description', models.TextField(blank=True, verbose_name='課程簡介')),
                ('start_date', models.DateField(blank=True, null=True, verbose_name='開課日期')),
                ('end_date', models.DateField(blank=True, null=True, verbose_name='結束日期')),
                ('class_time', models.CharField(blank=True, max_length=100, verbose_name='上課時間')),
                ('location', models.CharField(blank=True, max_length=100, verbose_name='上課地點')),
                ('status', models.CharField(choices=[('未開課', '未開課'), ('報名中', '報名中'), ('開課中', '開課中'), ('已額滿', '已額滿'), ('已結束', '已結束'), ('已封存', '已封存')], default='未開課', max_length=10, verbose_name='課程狀態')),
                ('archived', models.BooleanField(default=False, verbose_name='已封存')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='建立時間')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新時間')),
            ],
            options={
                'unique_together': {('name', 'course_code')},
            },
        ),
        migrations.CreateModel(
            name='CourseStudentList',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('course_key', models.CharField(max_length=130, unique=True, verbose_name='課程鍵值')),
                ('students', models.JSONField(blank=True, default=list, verbose_name='學生名單')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新時間')),
            ],
        ),
        migrations.CreateModel(
            name='GradeBook',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('course_key', models.CharField(max_length=130, unique=True, verbose_name='課程鍵值')),
                ('teacher_ids', models.JSONField(blank=True, default=list, verbose_name='授課老師')),
                ('columns', models.JSONField(blank=True, default=list, verbose_name='成績欄位')),
                ('students', models.JSONField(blank=True, default=list, verbose_name='學生成績列')),
                ('grades', models.JSONField(blank=True, default=dict, verbose_name='成績')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='更新時間')),
            ],
        ),
    ]
