"""Serializers for article payloads, responses and list queries."""

from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers

from core.serializers import StrictSerializer

from .models import Article

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

# Public (camelCase) names mapped to model fields.
WHERE_FIELDS = {
    "title": "title",
    "description": "description",
    "publishedAt": "published_at",
    "authorId": "author_id",
    "createdAt": "created_at",
}
ORDER_FIELDS = {
    "publishedAt": "published_at",
    "title": "title",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def _is_iso_date(value: str) -> bool:
    try:
        return bool(parse_datetime(value) or parse_date(value))
    except ValueError:
        return False


class AuthorSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    firstName = serializers.CharField(source="first_name", read_only=True)
    lastName = serializers.CharField(source="last_name", read_only=True)


class ArticleSerializer(serializers.ModelSerializer):
    """Article with its author, the shape stored in the cache."""

    publishedAt = serializers.DateField(source="published_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    author = AuthorSerializer(read_only=True)

    class Meta:
        model = Article
        fields = ["id", "title", "description", "publishedAt", "createdAt", "author"]
        read_only_fields = fields


class CreateArticleSerializer(StrictSerializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False)
    publishedAt = serializers.DateField(source="published_at")


class UpdateArticleSerializer(StrictSerializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    publishedAt = serializers.DateField(source="published_at", required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field must be provided")
        return attrs


class FilterConditionSerializer(StrictSerializer):
    """One operator object, e.g. ``{"contains": "django"}``.

    Dates stay strings so the validated query remains JSON-serializable for
    the cache fingerprint.
    """

    def get_fields(self):
        fields = {
            "equals": serializers.JSONField(required=False, allow_null=True),
            "in": serializers.ListField(required=False),
            "notIn": serializers.ListField(required=False),
        }
        for key in ("lt", "lte", "gt", "gte"):
            fields[key] = serializers.FloatField(required=False)
        for key in ("contains", "startsWith", "endsWith"):
            fields[key] = serializers.CharField(required=False, trim_whitespace=False)
        for key in ("ltDate", "lteDate", "gtDate", "gteDate"):
            fields[key] = serializers.CharField(required=False)
        return fields

    def validate(self, attrs):
        for key in ("ltDate", "lteDate", "gtDate", "gteDate"):
            value = attrs.get(key)
            if value is not None and not _is_iso_date(value):
                raise serializers.ValidationError({key: [f"{key} must be a valid ISO 8601 date string"]})
        return attrs


class ArticleWhereSerializer(StrictSerializer):
    def get_fields(self):
        return {name: FilterConditionSerializer(required=False) for name in WHERE_FIELDS}


class ArticleOrderBySerializer(StrictSerializer):
    def get_fields(self):
        return {name: serializers.ChoiceField(choices=["asc", "desc"], required=False) for name in ORDER_FIELDS}


class ListArticleQuerySerializer(StrictSerializer):
    limit = serializers.IntegerField(min_value=1, max_value=MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE)
    offset = serializers.IntegerField(min_value=0, default=0)
    where = ArticleWhereSerializer(required=False)
    orderBy = ArticleOrderBySerializer(required=False)


__all__ = [
    "ArticleSerializer",
    "CreateArticleSerializer",
    "UpdateArticleSerializer",
    "ListArticleQuerySerializer",
    "WHERE_FIELDS",
    "ORDER_FIELDS",
]
