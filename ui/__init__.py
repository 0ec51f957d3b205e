# Circuitboard UI Module
# Contains the pygame scene renderer and PNG export

from .canvas import SceneRenderer, hex_to_rgb
from .export import export_framing, export_png

__all__ = [
    'SceneRenderer',
    'hex_to_rgb',
    'export_framing',
    'export_png'
]
