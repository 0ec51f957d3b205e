"""Exceptions raised by the scene engine."""


class SceneError(Exception):
    """Base exception for scene engine operations."""
    pass


class SceneCodeError(SceneError):
    """Raised when a scene code cannot be decoded."""
    def __init__(self, code: str, detail: str = ""):
        self.code = code
        self.detail = detail
        message = f"{code}: {detail}" if detail else code
        super().__init__(message)


class ActionError(SceneError):
    """Raised when a scene action payload fails validation."""
    def __init__(self, detail: str):
        self.code = "invalid_actions"
        self.detail = detail
        super().__init__(f"invalid_actions: {detail}")


class ItemNotFoundError(SceneError):
    """Raised when a command addresses an item that is not in the scene."""
    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} '{item_id}' not found in scene")


class ConfigError(SceneError):
    """Raised when an environment override cannot be parsed."""
    pass
