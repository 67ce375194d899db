"""Article endpoints; reads are public, writes require the author's access token."""

import json

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticatedOrReadOnly
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    ArticleSerializer,
    CreateArticleSerializer,
    ListArticleQuerySerializer,
    UpdateArticleSerializer,
)
from .services import build_article_service

JSON_QUERY_PARAMS = ("where", "orderBy")


def _parse_list_query(query_params) -> dict:
    """Flatten query params; ``where``/``orderBy`` arrive JSON-encoded."""
    data = {}
    for key, value in query_params.items():
        if key in JSON_QUERY_PARAMS:
            try:
                value = json.loads(value)
            except ValueError as exc:
                raise ValidationError({key: [f"{key} must be a JSON object"]}) from exc
        data[key] = value
    return data


class ArticleListView(APIView):
    permission_classes = [IsAuthenticatedOrReadOnly]

    @extend_schema(
        parameters=[
            OpenApiParameter("limit", int),
            OpenApiParameter("offset", int),
            OpenApiParameter("where", str, description='JSON, e.g. {"title": {"contains": "x"}}'),
            OpenApiParameter("orderBy", str, description='JSON, e.g. {"publishedAt": "desc"}'),
        ],
        responses={200: ArticleSerializer(many=True)},
        auth=[],
    )
    def get(self, request):
        serializer = ListArticleQuerySerializer(data=_parse_list_query(request.query_params))
        serializer.is_valid(raise_exception=True)
        result = async_to_sync(build_article_service().list)(serializer.validated_data)
        return Response(result)

    @extend_schema(request=CreateArticleSerializer, responses={201: ArticleSerializer})
    def post(self, request):
        serializer = CreateArticleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        article = async_to_sync(build_article_service().create)(serializer.validated_data, request.user.id)
        return Response(article, status=status.HTTP_201_CREATED)


class ArticleDetailView(APIView):
    permission_classes = [IsAuthenticatedOrReadOnly]

    @extend_schema(responses={200: ArticleSerializer}, auth=[])
    def get(self, request, article_id):
        return Response(async_to_sync(build_article_service().get_by_id)(article_id))

    @extend_schema(request=UpdateArticleSerializer, responses={200: ArticleSerializer})
    def patch(self, request, article_id):
        serializer = UpdateArticleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        article = async_to_sync(build_article_service().update)(
            article_id, serializer.validated_data, request.user.id
        )
        return Response(article)

    @extend_schema(responses={204: None})
    def delete(self, request, article_id):
        async_to_sync(build_article_service().delete)(article_id, request.user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


__all__ = ["ArticleListView", "ArticleDetailView"]
