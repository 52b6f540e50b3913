from django.db import models
from django.contrib.auth.models import AbstractUser

DEFAULT_GRADE = '未設定'


class User(AbstractUser):
    ROLE_STUDENT = 'student'
    ROLE_TEACHER = 'teacher'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = (
        (ROLE_STUDENT, '學生'),
        (ROLE_TEACHER, '老師'),
        (ROLE_ADMIN, '管理員'),
    )

    name = models.CharField('姓名', max_length=100)
    role = models.CharField('角色', max_length=10, choices=ROLE_CHOICES, default=ROLE_STUDENT)
    email = models.EmailField('電子郵件', blank=True, null=True)
    student_id = models.CharField('學號', max_length=20, blank=True)
    grade = models.CharField('年級', max_length=20, blank=True)

    ### 文件式欄位：學生的已選課程 id 清單、老師的授課課程鍵值清單 "名稱(代碼)"
    enrolled_courses = models.JSONField('已選課程', default=list, blank=True)
    courses = models.JSONField('授課清單', default=list, blank=True)
    updated_at = models.DateTimeField('更新時間', auto_now=True)

    # date_joined, username, password 都繼承自 AbstractUser
    ### 使用 AbstractUser 好處是直接整合 Django 認證系統

    def __str__(self):
        return f"{self.name} ({self.get_role_display()})"

    @property
    def account(self):
        return self.username

    @property
    def is_student(self):
        return self.role == self.ROLE_STUDENT

    @property
    def is_teacher(self):
        return self.role == self.ROLE_TEACHER

    @property
    def is_admin_role(self):
        return self.role == self.ROLE_ADMIN

    def roster_info(self):
        """課程學生名單中保存的學生資料副本"""
        return {
            'name': self.name,
            'account': self.username,
            'email': self.email or '',
            'studentId': self.student_id or str(self.pk),
            'grade': self.grade or DEFAULT_GRADE,
        }


class StudentProfile(models.Model):
    """
    學生資料文件（與 users 分開存放）
    enrolled_courses 是 User.enrolled_courses 的另一份副本，由名單同步流程維護
    """
    user = models.OneToOneField(User, related_name='student_profile', on_delete=models.CASCADE)
    phone = models.CharField('電話', max_length=30, blank=True)
    school = models.CharField('學校', max_length=100, blank=True)
    enrolled_courses = models.JSONField('已選課程', default=list, blank=True)
    updated_at = models.DateTimeField('更新時間', auto_now=True)

    def __str__(self):
        return f"{self.user.name} 學生資料"
