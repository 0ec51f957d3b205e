"""
Circuitboard - Interactive Diagram Canvas
=========================================

A pygame front end for the Circuitboard scene engine: place circular nodes,
link them, curve the links, annotate with sticky notes and pan/zoom around an
infinite canvas.

Mouse / Touch:
    - Drag a node or note: Move it (drag onto the trash zone to delete)
    - Drag a corner: Resize
    - Drag from a node's side handle onto another node: Link
    - Drag an edge: Curve it; click an edge: Select it
    - Drag the background: Pan (or box-select in select mode)
    - Click the background: New sticky note
    - Wheel: Zoom

Keyboard:
    - N: Add node | K: Add sticky note | C: Cycle node color
    - M: Toggle pan/select mode
    - DELETE/BACKSPACE: Delete selection
    - U / Ctrl+Z: Undo
    - S: Save scene code | O: Open scene code
    - E: Export PNG
    - +/-: Zoom | R: Reset scene
    - ESC: Close editor | Q: Quit
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

import pygame

from engine.config import COLORS, get_config
from engine.editor import Editor
from engine.errors import SceneCodeError, SceneError
from engine.gestures import GestureState
from engine.models import Bounds
from ui.canvas import UI_COLORS, SceneRenderer, hex_to_rgb
from ui.export import export_png

logger = logging.getLogger("circuitboard")


# ==============================================================================
# Window Configuration
# ==============================================================================

WINDOW_WIDTH = 1400
WINDOW_HEIGHT = 800
STATUS_HEIGHT = 32
MOUSE_POINTER = 0
TOUCH_POINTER_BASE = 1000


# ==============================================================================
# Main Application
# ==============================================================================

class CircuitboardApp:
    def __init__(self, scene_path: str):
        pygame.init()
        pygame.display.set_caption("Circuitboard")

        self.screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
        self.clock = pygame.time.Clock()
        self.renderer = SceneRenderer()
        self.font = pygame.font.Font(None, 22)

        trash = Bounds(WINDOW_WIDTH - 100, WINDOW_HEIGHT - STATUS_HEIGHT - 90,
                       WINDOW_WIDTH - 20, WINDOW_HEIGHT - STATUS_HEIGHT - 20)
        self.editor = Editor(get_config(), (WINDOW_WIDTH, WINDOW_HEIGHT), trash)
        self.editor.gestures.on_state_change = self._on_state_change
        self.scene_path = scene_path

        self.status_message = "N: add node | click background: sticky note | M: mode"
        self.status_time = pygame.time.get_ticks() + 5000
        self.running = True

    def _show_status(self, message: str, duration: float = 3.0):
        """Display a status message"""
        self.status_message = message
        self.status_time = pygame.time.get_ticks() + duration * 1000

    def _on_state_change(self, old_state: GestureState, new_state: GestureState):
        if new_state is GestureState.LINKING:
            self._show_status("Release over another node to link")
        elif new_state is GestureState.BOX_SELECTING:
            self._show_status("Box select")

    # --------------------------------------------------------------------------
    # Commands
    # --------------------------------------------------------------------------

    def _save_scene(self):
        """Write the scene code to disk"""
        try:
            with open(self.scene_path, 'w', encoding='utf-8') as f:
                f.write(self.editor.encode())
            self._show_status(f"Scene code saved to {self.scene_path}")
        except OSError as e:
            logger.error(f"Saving {self.scene_path} failed: {e}")
            self._show_status(f"Error saving: {e}")

    def _open_scene(self):
        """Load the scene code from disk"""
        if not os.path.exists(self.scene_path):
            self._show_status("No saved scene found")
            return
        try:
            with open(self.scene_path, 'r', encoding='utf-8') as f:
                self.editor.load_code(f.read())
            self._show_status(f"Scene loaded from {self.scene_path}")
        except SceneCodeError as e:
            logger.warning(f"Rejected scene code in {self.scene_path}: {e}")
            self._show_status("Invalid code. Make sure the file holds the full string.")
        except OSError as e:
            logger.error(f"Reading {self.scene_path} failed: {e}")
            self._show_status(f"Error loading: {e}")

    def _export(self):
        try:
            # Blocks the loop: the viewport stays re-framed until the file is written
            path = asyncio.run(export_png(self.editor, renderer=self.renderer,
                                          size=self.screen.get_size()))
            self._show_status(f"Exported {path}")
        except (pygame.error, OSError) as e:
            logger.error(f"Export failed: {e}")
            self._show_status(f"Export failed: {e}")

    def _cycle_color(self):
        index = COLORS.index(self.editor.selected_color) if self.editor.selected_color in COLORS else -1
        self.editor.selected_color = COLORS[(index + 1) % len(COLORS)]
        selection = self.editor.selection
        if selection.active_id and self.editor.store.get_node(selection.active_id):
            self.editor.update_node(selection.active_id, color=self.editor.selected_color)
        self._show_status(f"Node color {self.editor.selected_color}")

    def _cancel_gesture(self):
        gesture = self.editor.gestures.gesture
        if gesture.state is not GestureState.IDLE:
            self.editor.pointer_cancel(gesture.pointer_id)

    # --------------------------------------------------------------------------
    # Events
    # --------------------------------------------------------------------------

    def _handle_key(self, event):
        ctrl = event.mod & pygame.KMOD_CTRL
        editor = self.editor

        if event.key == pygame.K_q:
            self.running = False
        elif event.key == pygame.K_ESCAPE:
            editor.close_editor()
        elif event.key == pygame.K_n:
            node = editor.add_node()
            self._show_status(f"Added {node.title}")
        elif event.key == pygame.K_k:
            editor.add_sticky()
        elif event.key == pygame.K_c:
            self._cycle_color()
        elif event.key == pygame.K_m:
            mode = editor.toggle_mode()
            self._show_status(f"Mode: {mode.value}")
        elif event.key == pygame.K_u or (ctrl and event.key == pygame.K_z):
            self._show_status("Undo successful" if editor.undo() else "Nothing to undo")
        elif event.key == pygame.K_s:
            self._save_scene()
        elif event.key == pygame.K_o:
            self._open_scene()
        elif event.key == pygame.K_e:
            self._export()
        elif event.key == pygame.K_r:
            editor.reset()
            self._show_status("Scene reset (U to undo)")
        elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            editor.zoom_in()
        elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            editor.zoom_out()
        elif event.key in (pygame.K_DELETE, pygame.K_BACKSPACE):
            nodes, edges, notes = editor.delete_selection()
            if nodes or edges or notes:
                self._show_status(f"Deleted {nodes} nodes, {edges} edges, {notes} notes")

    def _handle_events(self):
        """Map pygame input onto pointer events and commands"""
        width, height = self.screen.get_size()
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            elif event.type == pygame.KEYDOWN:
                self._handle_key(event)

            # Mouse events synthesized from touches are skipped; fingers arrive below
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 \
                    and not getattr(event, 'touch', False):
                self.editor.pointer_down(MOUSE_POINTER, *event.pos)
            elif event.type == pygame.MOUSEMOTION and not getattr(event, 'touch', False):
                self.editor.pointer_move(MOUSE_POINTER, *event.pos)
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1 \
                    and not getattr(event, 'touch', False):
                self.editor.pointer_up(MOUSE_POINTER, *event.pos)
            elif event.type == pygame.MOUSEWHEEL:
                if event.y > 0:
                    self.editor.zoom_in()
                elif event.y < 0:
                    self.editor.zoom_out()

            elif event.type == pygame.FINGERDOWN:
                self.editor.pointer_down(TOUCH_POINTER_BASE + event.finger_id,
                                         event.x * width, event.y * height)
            elif event.type == pygame.FINGERMOTION:
                self.editor.pointer_move(TOUCH_POINTER_BASE + event.finger_id,
                                         event.x * width, event.y * height)
            elif event.type == pygame.FINGERUP:
                self.editor.pointer_up(TOUCH_POINTER_BASE + event.finger_id,
                                       event.x * width, event.y * height)

            elif event.type == pygame.WINDOWFOCUSLOST:
                self._cancel_gesture()

    # --------------------------------------------------------------------------
    # Drawing
    # --------------------------------------------------------------------------

    def _draw(self):
        self.renderer.draw(self.screen, self.editor, legend=self.editor.legend_entries() or None)

        width, height = self.screen.get_size()
        status_bg = pygame.Rect(0, height - STATUS_HEIGHT, width, STATUS_HEIGHT)
        pygame.draw.rect(self.screen, (20, 22, 28), status_bg)

        editor = self.editor
        info = (f"Mode: {editor.mode.value} | Zoom: {editor.viewport.zoom:.2f} | "
                f"Nodes: {editor.store.node_count} | Edges: {editor.store.edge_count} | "
                f"Notes: {len(editor.sticky_notes)}")
        info_surf = self.font.render(info, True, (200, 200, 200))
        self.screen.blit(info_surf, (width - info_surf.get_width() - 16, height - 24))

        pygame.draw.circle(self.screen, hex_to_rgb(editor.selected_color), (18, height - 16), 8)
        if pygame.time.get_ticks() < self.status_time:
            status_surf = self.font.render(self.status_message, True, UI_COLORS['grid'])
            self.screen.blit(status_surf, (34, height - 24))

        pygame.display.flip()

    def run(self):
        """Main loop"""
        print("\n" + "=" * 65)
        print("  Circuitboard - Interactive Diagram Canvas")
        print("=" * 65)
        print("\nKeyboard:")
        print("  • [N] Node | [K] Sticky | [C] Color | [M] Pan/Select mode")
        print("  • [DEL] Delete selection | [U] Undo | [R] Reset")
        print(f"  • [S] Save / [O] Open {self.scene_path} | [E] Export PNG | [Q] Quit")
        print("\n" + "=" * 65 + "\n")

        try:
            while self.running:
                try:
                    self._handle_events()
                except SceneError as e:
                    logger.warning(f"Command rejected: {e}")
                    self._show_status(str(e))
                self._draw()
                self.clock.tick(60)
        except KeyboardInterrupt:
            logger.info("Quitting via KeyboardInterrupt")
        finally:
            pygame.quit()


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Circuitboard interactive diagram canvas")
    parser.add_argument("--scene", default="scene.txt",
                        help="file the scene code is saved to and opened from")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = CircuitboardApp(args.scene)
    if os.path.exists(args.scene):
        app._open_scene()
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
