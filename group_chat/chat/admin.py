from django.contrib import admin

from group_chat.chat import models


@admin.register(models.Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "text", "timestamp"]
    search_fields = ["sender", "text"]
    list_filter = ["timestamp"]
    readonly_fields = ["timestamp"]
