from .base import CacheInvalidator, ObjectStore, StateStore
from .cloudfront import CloudFrontInvalidator
from .local import JsonFileStateStore
from .s3 import S3ObjectStore, S3StateStore

__all__ = [
    "CacheInvalidator",
    "ObjectStore",
    "StateStore",
    "CloudFrontInvalidator",
    "JsonFileStateStore",
    "S3ObjectStore",
    "S3StateStore",
]
