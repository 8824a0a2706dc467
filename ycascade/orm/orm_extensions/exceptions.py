"""级联删除异常类

定义级联配置相关的异常层次结构。

数据库执行错误（sqlalchemy.exc.*）不会被包装，原样向上抛出。
"""

from typing import Any


def _model_name(model: Any) -> str:
    return getattr(model, "__name__", repr(model))


class CascadeError(Exception):
    """级联错误基类

    所有级联相关的异常都继承自此类
    """
    pass


class CascadeConfigurationError(CascadeError):
    """级联配置错误

    模型声明的级联关系无法使用时抛出（快速失败，不会静默跳过）
    """
    pass


class UnresolvedRelationError(CascadeConfigurationError):
    """关系名无法解析

    __deletes_with__ 中声明的名称不是模型上的 relationship
    """

    def __init__(self, model: Any, relation: str):
        self.model = model
        self.relation = relation
        super().__init__(
            f"{_model_name(model)} 声明的级联关系 '{relation}' 不存在"
        )


class UnsupportedRelationError(CascadeConfigurationError):
    """关系类型不支持级联

    只支持一对多、一对一（外键在子表）的关系
    """

    def __init__(self, model: Any, relation: str, reason: str):
        self.model = model
        self.relation = relation
        self.reason = reason
        super().__init__(
            f"{_model_name(model)}.{relation} 不支持级联删除: {reason}"
        )


class DuplicateRelationError(CascadeConfigurationError):
    """级联关系重复声明"""

    def __init__(self, model: Any, relation: str):
        self.model = model
        self.relation = relation
        super().__init__(
            f"{_model_name(model)} 重复声明了级联关系 '{relation}'"
        )


class SoftDeleteNotSupportedError(CascadeConfigurationError):
    """模型没有软删除字段，无法恢复"""

    def __init__(self, model: Any):
        self.model = model
        super().__init__(
            f"{_model_name(model)} 没有软删除字段，不支持恢复操作"
        )

    def __repr__(self) -> str:
        return f"SoftDeleteNotSupportedError(model={_model_name(self.model)!r})"
