from gatepass.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = ["BaseCreateSchema", "BaseResponseSchema", "BaseSchema"]
