from django.db import models


def build_course_key(name, code):
    """課程鍵值 "名稱(代碼)"，學生名單與成績文件都以此為 id"""
    return f"{name}({code})"


class Course(models.Model):
    STATUS_NOT_STARTED = '未開課'
    STATUS_ENROLLING = '報名中'
    STATUS_IN_PROGRESS = '開課中'
    STATUS_FULL = '已額滿'
    STATUS_ENDED = '已結束'
    STATUS_ARCHIVED = '已封存'
    STATUS_CHOICES = (
        (STATUS_NOT_STARTED, '未開課'),
        (STATUS_ENROLLING, '報名中'),
        (STATUS_IN_PROGRESS, '開課中'),
        (STATUS_FULL, '已額滿'),
        (STATUS_ENDED, '已結束'),
        (STATUS_ARCHIVED, '已封存'),
    )

    name = models.CharField('課程名稱', max_length=100)
    course_code = models.CharField('課程代碼', max_length=20)
    subject = models.CharField('科目', max_length=50, blank=True)
    grades = models.JSONField('適用年級', default=list, blank=True)
    teacher_ids = models.JSONField('授課老師', default=list, blank=True)
    description = models.TextField('課程簡介', blank=True)
    start_date = models.DateField('開課日期', null=True, blank=True)
    end_date = models.DateField('結束日期', null=True, blank=True)
    class_time = models.CharField('上課時間', max_length=100, blank=True)
    location = models.CharField('上課地點', max_length=100, blank=True)
    status = models.CharField('課程狀態', max_length=10, choices=STATUS_CHOICES, default=STATUS_NOT_STARTED)
    archived = models.BooleanField('已封存', default=False)
    created_at = models.DateTimeField('建立時間', auto_now_add=True)
    updated_at = models.DateTimeField('更新時間', auto_now=True)

    class Meta:
        unique_together = ('name', 'course_code')

    def __str__(self):
        return self.course_key

    @property
    def course_key(self):
        return build_course_key(self.name, self.course_code)

    def as_student_course(self):
        return {
            'id': self.pk,
            'name': self.name,
            'code': self.course_code,
            'subject': self.subject,
            'grade': '、'.join(self.grades),
        }


class CourseStudentList(models.Model):
    """
    課程學生名單文件，以課程鍵值為 id
    students: [{id, name, account, email, studentId, grade}, ...]
    """
    course_key = models.CharField('課程鍵值', max_length=130, unique=True)
    students = models.JSONField('學生名單', default=list, blank=True)
    updated_at = models.DateTimeField('更新時間', auto_now=True)

    def __str__(self):
        return f"{self.course_key} 學生名單 ({len(self.students)})"

    def find_student(self, student_id):
        for index, entry in enumerate(self.students):
            if entry.get('id') == student_id:
                return index
        return None


class GradeBook(models.Model):
    """成績文件，grades 以學號為 key"""
    course_key = models.CharField('課程鍵值', max_length=130, unique=True)
    teacher_ids = models.JSONField('授課老師', default=list, blank=True)
    columns = models.JSONField('成績欄位', default=list, blank=True)
    students = models.JSONField('學生成績列', default=list, blank=True)
    grades = models.JSONField('成績', default=dict, blank=True)
    updated_at = models.DateTimeField('更新時間', auto_now=True)

    def __str__(self):
        return f"{self.course_key} 成績"
