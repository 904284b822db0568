"""基础配置类"""
from pydantic import BaseModel, ConfigDict


class BaseConfig(BaseModel):
    """基础配置类 - 只读模型的基类"""

    model_config = ConfigDict(
        frozen=True,  # 不可变
        extra='forbid',  # 禁止额外字段
        use_enum_values=False,
        str_strip_whitespace=True,  # 去除空白字符
    )


class DraftConfig(BaseModel):
    """可变模型的基类，逐步构建时每次赋值都会校验"""

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,  # 赋值时验证
        str_strip_whitespace=True,
    )
