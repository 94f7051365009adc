from .generator import SchemaGenerator, SchemaRoot, scratch_workspace

__all__ = ["SchemaGenerator", "SchemaRoot", "scratch_workspace"]
