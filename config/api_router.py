from django.urls import path

from group_chat.chat.api.views import MessageListView

app_name = "api"
urlpatterns = [
    path("messages/", MessageListView.as_view(), name="messages"),
]
