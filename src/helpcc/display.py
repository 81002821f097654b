"""Terminal display backends for menus and pages."""
import logging
import shutil
import subprocess
import sys

try:
    import curses
except ImportError:  # Python built without _curses
    curses = None

from .markup import (
    EMPHASIS_START, EMPHASIS_END, BOX_PADDING_X, PAGE_PADDING_Y, MENU_PADDING_Y,
    parse_emphasis, wrap_lines,
)
from .menu import Selection

logger = logging.getLogger(__name__)

BACKENDS = ('curses', 'dialog')

KEY_ESCAPE = 27
ENTER_KEYS = (10, 13)
TERMINAL_ERRORS = (curses.error,) if curses is not None else ()


class DependencyError(Exception):
    """Raised when the selected display backend cannot run here."""


def check_dependency(backend):
    """Fail fast if ``backend`` cannot draw on this machine."""
    if backend == 'dialog':
        if shutil.which('dialog') is None:
            raise DependencyError(
                "dialog is not installed. Please install it using: sudo apt-get install dialog"
            )
    elif backend == 'curses':
        if curses is None:
            raise DependencyError("This Python was built without curses support")
        if not (sys.stdin.isatty() and sys.stdout.isatty()):
            raise DependencyError("An interactive terminal is required")
    else:
        raise DependencyError(f"Unknown display backend: {backend}")


class TerminalDisplay:
    """Draws menus and pages with curses on an already initialised screen."""

    def __init__(self, stdscr, colors=True, start=EMPHASIS_START, end=EMPHASIS_END):
        self.stdscr = stdscr
        self.start = start
        self.end = end
        self.colors = False

        try:
            curses.curs_set(0)
        except curses.error:
            pass
        self.stdscr.keypad(True)

        if colors:
            try:
                if curses.has_colors():
                    curses.start_color()
                    curses.init_pair(1, curses.COLOR_WHITE, curses.COLOR_BLUE)  # Title
                    curses.init_pair(2, curses.COLOR_RED, curses.COLOR_BLACK)  # Emphasis
                    self.colors = True
            except curses.error as e:
                logger.warning(f"Colors unavailable: {e}")

    @property
    def title_attr(self):
        attr = curses.A_BOLD
        return attr | curses.color_pair(1) if self.colors else attr

    @property
    def emphasis_attr(self):
        attr = curses.A_BOLD
        return attr | curses.color_pair(2) if self.colors else attr

    def _put(self, y, x, text, attr=0):
        try:
            self.stdscr.addstr(y, x, text, attr)
        except curses.error:
            # Writing the bottom-right cell raises after the text is drawn
            pass

    def _frame(self, height, width):
        """Clear the screen and draw a centred box; return its geometry."""
        screen_h, screen_w = self.stdscr.getmaxyx()
        height = max(3, min(height, screen_h))
        width = max(BOX_PADDING_X + 1, min(width, screen_w))
        top = (screen_h - height) // 2
        left = (screen_w - width) // 2

        self.stdscr.erase()
        self._put(top, left, '+' + '-' * (width - 2) + '+')
        for row in range(1, height - 1):
            self._put(top + row, left, '|' + ' ' * (width - 2) + '|')
        self._put(top + height - 1, left, '+' + '-' * (width - 2) + '+')
        return top, left, height, width

    def _title(self, top, left, width, title):
        label = f" {title} "[:width - 2]
        self._put(top, left + (width - len(label)) // 2, label, self.title_attr)

    def render_menu(self, title, prompt, entries, height, width, back_label='Back'):
        """Show a selectable list and block until the user picks something.

        ``entries`` is a list of ``(shortcut, label)`` pairs. A trailing
        ``0`` entry labelled ``back_label`` is always added.
        """
        items = list(entries) + [('0', back_label)]
        cursor = 0
        offset = 0

        while True:
            top, left, box_h, box_w = self._frame(height, width)
            self._title(top, left, box_w, title)
            self._put(top + 2, left + 2, prompt[:box_w - BOX_PADDING_X])

            visible = max(1, box_h - MENU_PADDING_Y)
            if cursor < offset:
                offset = cursor
            elif cursor >= offset + visible:
                offset = cursor - visible + 1

            for row, (shortcut, label) in enumerate(items[offset:offset + visible]):
                text = f" {shortcut:>2}  {label}"[:box_w - BOX_PADDING_X]
                attr = curses.A_REVERSE if offset + row == cursor else 0
                self._put(top + 4 + row, left + 2, text.ljust(box_w - BOX_PADDING_X), attr)

            hint = "Enter: select  Esc: back  q: quit"
            self._put(top + box_h - 2, left + 2, hint[:box_w - BOX_PADDING_X])
            self.stdscr.refresh()

            key = self.stdscr.getch()
            if key in (curses.KEY_UP, ord('k'), ord('K')):
                cursor = max(0, cursor - 1)
            elif key in (curses.KEY_DOWN, ord('j'), ord('J')):
                cursor = min(len(items) - 1, cursor + 1)
            elif key in ENTER_KEYS or key == curses.KEY_ENTER:
                return Selection.from_choice(items[cursor][0])
            elif key == KEY_ESCAPE:
                return Selection.cancel()
            elif key in (ord('q'), ord('Q')):
                return Selection.exit()
            elif ord('0') <= key <= ord('9'):
                tag = chr(key)
                if any(shortcut == tag for shortcut, _ in items):
                    return Selection.from_choice(tag)

    def render_page(self, title, body, height, width):
        """Show a scrollable page until it is dismissed."""
        lines = parse_emphasis(body, self.start, self.end)
        top_line = 0

        while True:
            top, left, box_h, box_w = self._frame(height, width)
            inner_w = box_w - BOX_PADDING_X
            rows = wrap_lines(lines, max(1, inner_w))
            visible = max(1, box_h - PAGE_PADDING_Y)
            last_top = max(0, len(rows) - visible)
            top_line = min(top_line, last_top)

            self._title(top, left, box_w, title)
            for i, segments in enumerate(rows[top_line:top_line + visible]):
                x = left + 2
                for chunk, emphasized in segments:
                    self._put(top + 1 + i, x, chunk, self.emphasis_attr if emphasized else 0)
                    x += len(chunk)

            self._put(top + box_h - 3, left + 1, '-' * (box_w - 2))
            shown_to = min(len(rows), top_line + visible)
            footer = f"< OK >  Line {top_line + 1}-{shown_to} of {len(rows)}"
            self._put(top + box_h - 2, left + 2, footer[:inner_w])
            self.stdscr.refresh()

            key = self.stdscr.getch()
            if key in ENTER_KEYS or key in (curses.KEY_ENTER, KEY_ESCAPE, ord('q'), ord('Q')):
                return None
            elif key in (curses.KEY_UP, ord('k'), ord('K')):
                top_line = max(0, top_line - 1)
            elif key in (curses.KEY_DOWN, ord('j'), ord('J')):
                top_line = min(last_top, top_line + 1)
            elif key == curses.KEY_PPAGE:
                top_line = max(0, top_line - visible)
            elif key in (curses.KEY_NPAGE, ord(' ')):
                top_line = min(last_top, top_line + visible)
            elif key == curses.KEY_HOME:
                top_line = 0
            elif key == curses.KEY_END:
                top_line = last_top


class DialogDisplay:
    """Draws menus and pages by running the ``dialog`` program.

    ``dialog`` reports the chosen menu tag on stderr, which is redirected into
    ``channel``, a temporary file owned by the caller.
    """

    def __init__(self, channel, start=EMPHASIS_START, end=EMPHASIS_END, executable='dialog'):
        self.channel = channel
        self.start = start
        self.end = end
        self.executable = executable

    def _run(self, args):
        self.channel.seek(0)
        self.channel.truncate()
        result = subprocess.run([self.executable] + args, stderr=self.channel, check=False)
        self.channel.seek(0)
        return result.returncode, self.channel.read()

    def render_menu(self, title, prompt, entries, height, width, back_label='Back'):
        items = list(entries) + [('0', back_label)]
        list_height = max(1, height - MENU_PADDING_Y)
        args = ['--title', title, '--menu', prompt, str(height), str(width), str(list_height)]
        for shortcut, label in items:
            args.extend([shortcut, label])

        returncode, output = self._run(args)
        if returncode == 0:
            return Selection.from_choice(output)
        if returncode not in (1, 255):
            logger.warning(f"dialog exited with status {returncode}: {output.strip()}")
        return Selection.cancel()

    def to_dialog_text(self, body):
        """Re-emit parsed emphasis with dialog's own colour escapes."""
        out = []
        for segments in parse_emphasis(body, self.start, self.end):
            out.append(''.join(
                f"\\Zb\\Z1{chunk}\\Zn" if emphasized else chunk
                for chunk, emphasized in segments
            ))
        return '\n'.join(out)

    def render_page(self, title, body, height, width):
        args = [
            '--title', title, '--colors', '--no-collapse',
            '--msgbox', self.to_dialog_text(body), str(height), str(width),
        ]
        returncode, output = self._run(args)
        if returncode not in (0, 1, 255):
            logger.warning(f"dialog exited with status {returncode}: {output.strip()}")
        return None
