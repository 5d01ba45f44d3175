from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import Account, EmailVerification, Exam, ExamQuestion, ExamResult, Question, ResultAnswer

admin.site.site_header = "Online Examination Admin"
admin.site.index_title = "Welcome to the Online Examination Platform"


# Register models.
@admin.register(Account)
class AccountAdmin(UserAdmin):
    ordering = ('-date_joined',)
    list_display = ('email', 'name', 'role', 'is_active', 'is_email_verified', 'lock_until', 'date_joined')
    search_fields = ('email', 'name')
    list_filter = ('role', 'is_active', 'is_email_verified')
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Profile', {'fields': ('name', 'first_name', 'last_name', 'avatar', 'google_id')}),
        ('Access', {'fields': ('role', 'is_active', 'is_staff', 'is_superuser', 'is_email_verified')}),
        ('Lockout', {'fields': ('failed_login_attempts', 'lock_until')}),
        ('Dates', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('email', 'role', 'password1', 'password2')}),
    )


@admin.register(EmailVerification)
class EmailVerificationAdmin(admin.ModelAdmin):
    list_display = ('account', 'token', 'created_at', 'expires_at')
    search_fields = ('account__email',)


class ExamQuestionInline(admin.TabularInline):
    model = ExamQuestion
    extra = 0
    ordering = ('position',)


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'subject', 'duration', 'start_time', 'end_time', 'is_active', 'created_by', 'created_at')
    search_fields = ('title', 'subject')
    list_filter = ('subject', 'is_active', 'start_time', 'end_time')
    inlines = [ExamQuestionInline]


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('question_text', 'question_type', 'subject', 'marks', 'difficulty', 'created_by', 'created_at')
    search_fields = ('question_text', 'subject')
    list_filter = ('question_type', 'difficulty', 'subject')


class ResultAnswerInline(admin.TabularInline):
    model = ResultAnswer
    extra = 0


@admin.register(ExamResult)
class ExamResultAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'attempt_number', 'marks_obtained', 'percentage', 'is_passed', 'status')
    search_fields = ('student__email', 'exam__title')
    list_filter = ('status', 'is_passed')
    inlines = [ResultAnswerInline]
