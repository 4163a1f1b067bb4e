from subleshnn.config.settings import settings

__all__ = ["settings"]
