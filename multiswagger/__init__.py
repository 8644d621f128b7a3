"""
openapi-multi-swagger

Aggregates OpenAPI/Swagger documents published by cluster services into a
single Swagger UI portal.
"""

__version__ = "1.0.0"
