from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .exceptions import ReactionInvariantError
from .reactions import check_reactions


class Message(models.Model):
    text = models.TextField()
    sender = models.CharField(max_length=255)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    # emoji -> list of display names; empty entries are never stored
    reactions = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["timestamp", "id"]

    def __str__(self):
        return f"{self.sender}: {self.text[:50]}"

    def clean(self):
        super().clean()
        errors = {}
        if not self.text or not self.text.strip():
            errors["text"] = "Message text is required."
        if not self.sender or not self.sender.strip():
            errors["sender"] = "Sender is required."
        if not isinstance(self.reactions, dict):
            errors["reactions"] = "Reactions must be an object."
        else:
            try:
                check_reactions(self.reactions)
            except ReactionInvariantError as exc:
                errors["reactions"] = str(exc)
        if errors:
            raise ValidationError(errors)
