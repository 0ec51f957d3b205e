# Circuitboard Engine Module
# Contains the scene model, gesture state machine, undo history and scene codec

from .analysis import AnalysisReport, analyze
from .codec import DecodedScene, decode, encode
from .config import COLORS, EngineConfig, get_config
from .editor import Editor
from .errors import ActionError, ConfigError, ItemNotFoundError, SceneCodeError, SceneError
from .gestures import GestureMachine, GestureState, InteractionMode
from .history import HistoryManager, HistorySnapshot
from .models import Bounds, Direction, Edge, Keyword, Node, Point, StickyNote
from .store import SceneStore
from .transform import Viewport

__all__ = [
    'AnalysisReport',
    'analyze',
    'DecodedScene',
    'decode',
    'encode',
    'COLORS',
    'EngineConfig',
    'get_config',
    'Editor',
    'ActionError',
    'ConfigError',
    'ItemNotFoundError',
    'SceneCodeError',
    'SceneError',
    'GestureMachine',
    'GestureState',
    'InteractionMode',
    'HistoryManager',
    'HistorySnapshot',
    'Bounds',
    'Direction',
    'Edge',
    'Keyword',
    'Node',
    'Point',
    'StickyNote',
    'SceneStore',
    'Viewport',
]
