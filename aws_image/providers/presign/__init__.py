"""Presign providers (REST and GraphQL) with their request/response plumbing."""

from aws_image.providers.presign.graphql_provider import GraphQLPresignProvider
from aws_image.providers.presign.parsers import GraphQLResponseParser, RestResponseParser
from aws_image.providers.presign.rest_provider import RestPresignProvider
from aws_image.providers.presign.transformers import GraphQLRequestTransformer, RequestTransformer

__all__ = [
    "GraphQLPresignProvider",
    "GraphQLRequestTransformer",
    "GraphQLResponseParser",
    "RequestTransformer",
    "RestPresignProvider",
    "RestResponseParser",
]
