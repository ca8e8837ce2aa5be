"""
Abstract base models for storefront applications

Ordering is left to the concrete models.
"""
import uuid
from django.db import models


class TimestampedModel(models.Model):
    """Creation and modification times, for tables with their own primary key."""
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save_fields(self, *fields: str) -> None:
        """Save only `fields`, always bumping updated_at."""
        self.save(update_fields=[*dict.fromkeys(fields), 'updated_at'])


class BaseModel(TimestampedModel):
    """
    UUID-keyed entity. The UUID is the internal id; customer-facing
    references (order short ids, identity-provider uids) live on the
    concrete models.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True

    def __str__(self):
        return str(self.id)
