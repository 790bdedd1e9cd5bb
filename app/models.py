from tortoise import fields
from tortoise.models import Model


class Document(Model):
    """One document of the backend store, addressed by its full slash path."""

    path = fields.CharField(max_length=512, primary_key=True)
    parent = fields.CharField(max_length=512, db_index=True)  # collection path
    doc_id = fields.CharField(max_length=128)

    data = fields.JSONField(default=dict)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "documents"
        ordering = ["path"]
