from .publish_dispatcher import PublishDispatcher

__all__ = ["PublishDispatcher"]
