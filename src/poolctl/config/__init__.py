from .settings import AppSettings, ApiSettings, AwsSettings

__all__ = ["AppSettings", "ApiSettings", "AwsSettings"]
