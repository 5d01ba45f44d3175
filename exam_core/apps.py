from django.apps import AppConfig


class ExamCoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'exam_core'
    verbose_name = 'Online Examination'
