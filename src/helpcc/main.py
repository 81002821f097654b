import sys
import signal
import logging
import argparse
import shutil
import subprocess
import tempfile
from pathlib import Path

import yaml

# Local imports
from . import __version__
from .menu import NavigationStack, Selection
from .content import ContentProvider, ContentError
from .markup import EMPHASIS_START, EMPHASIS_END, page_dimensions, menu_dimensions
from .display import (
    BACKENDS, TERMINAL_ERRORS, DependencyError, DialogDisplay, TerminalDisplay,
    check_dependency, curses,
)

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DEFAULT_CONFIG_PATH = 'config.yaml'

DEFAULT_CONFIG = {
    'general': {
        'app_name': 'Help Command Center',
        'version': __version__,
    },
    'display': {
        'backend': 'curses',
        'colors': True,
        'max_width': 80,
        'max_height': 24,
    },
    'content': {
        'path': None,
        'root': 'root',
        'emphasis_start': EMPHASIS_START,
        'emphasis_end': EMPHASIS_END,
    },
    'logging': {
        'level': 'warning',
        'file': None,
    },
}

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file cannot be used."""


class NavigationEngine:
    """Drives the menu loop over a tree of MenuNodes.

    Each pass renders the menu on top of the stack, asks the display for a
    Selection and applies it. The loop ends once the stack is empty.
    """

    def __init__(self, root, display, max_height=24, max_width=80,
                 start=EMPHASIS_START, end=EMPHASIS_END):
        self.stack = NavigationStack(root)
        self.display = display
        self.max_height = max_height
        self.max_width = max_width
        self.start = start
        self.end = end

    @property
    def active(self):
        return self.stack.active

    def render_current(self):
        node = self.stack.top
        entries = [(shortcut, child.label) for shortcut, child in node.children]
        back_label = 'Exit' if len(self.stack) == 1 else 'Back'
        # Both backends append the back entry after the children
        height, width = menu_dimensions(
            node.title, node.prompt or '', [label for _, label in entries] + [back_label],
            self.max_height, self.max_width,
        )
        return self.display.render_menu(node.title, node.prompt or '', entries,
                                        height, width, back_label=back_label)

    def show_page(self, node):
        if node.height and node.width:
            height, width = node.height, node.width
        else:
            height, width = page_dimensions(node.title, node.body, self.max_height,
                                            self.max_width, self.start, self.end)
            height = node.height or height
            width = node.width or width
        height = min(height, self.max_height)
        width = min(width, self.max_width)
        logger.debug(f"Showing page {node.id}")
        self.display.render_page(node.title, node.body, height, width)

    def dispatch(self, selection):
        """Apply one Selection to the stack."""
        top = self.stack.top
        children = top.children

        if not isinstance(selection, Selection):
            logger.debug(f"Unrecognized selection {selection!r}, treating as cancel")
            selection = Selection.cancel()
        elif selection.kind == Selection.CHILD and not (
                isinstance(selection.index, int) and 0 <= selection.index < len(children)):
            logger.debug(f"Selection {selection!r} out of range in {top.id}, treating as cancel")
            selection = Selection.cancel()

        if selection.kind == Selection.CHILD:
            _, child = children[selection.index]
            if child.is_submenu:
                self.stack.push(child)
                logger.debug(f"Entered {child.id} (depth {len(self.stack)})")
            else:
                self.show_page(child)
        elif selection.kind == Selection.EXIT:
            logger.debug("Exit selected")
            self.stack.end()
        elif len(self.stack) > 1:
            popped = self.stack.pop()
            logger.debug(f"Left {popped.id}")
        else:
            logger.debug("Back at root, ending session")
            self.stack.end()

    def run(self):
        while self.stack.active:
            self.dispatch(self.render_current())


def _merge_config(user_config):
    config = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}
    for section, values in (user_config or {}).items():
        if isinstance(values, dict) and section in config:
            config[section].update(values)
        else:
            config[section] = values
    return config


def load_config(path=None):
    """Load the YAML config, falling back to defaults when no file exists.

    An explicitly given path that cannot be read is an error; a missing
    default ``config.yaml`` is not.
    """
    explicit = path is not None
    path = Path(path or DEFAULT_CONFIG_PATH)
    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return _merge_config({})

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    config = _merge_config(data)

    backend = config['display'].get('backend')
    if backend not in BACKENDS:
        raise ConfigError(f"Unknown display backend: {backend}")
    return config


def setup_logging(log_config):
    level_name = str(log_config.get('level') or 'warning').upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level: {log_config.get('level')}")

    kwargs = {'level': level, 'format': LOG_FORMAT, 'force': True}
    log_file = log_config.get('file')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        kwargs['filename'] = log_file
    else:
        # stderr belongs to curses/dialog while a session is on screen
        kwargs['handlers'] = [logging.NullHandler()]
    logging.basicConfig(**kwargs)


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt(f"signal {signum}")


def install_signal_handlers():
    """Route SIGINT and SIGTERM through the normal unwinding path."""
    signal.signal(signal.SIGINT, _raise_interrupt)
    signal.signal(signal.SIGTERM, _raise_interrupt)


def clear_screen():
    if sys.stdout.isatty() and shutil.which('clear'):
        subprocess.run(['clear'], check=False)


def run_session(config, provider):
    """Run one interactive session; returns once the user exits."""
    display_conf = config['display']
    content_conf = config['content']
    backend = display_conf['backend']

    check_dependency(backend)
    root_id = content_conf['root']
    count = provider.validate(root_id)
    logger.info(f"Starting session with {count} content nodes ({backend} backend)")
    root = provider.build_tree(root_id)
    general = config['general']
    root.title = f"{general['app_name']} v{general['version']}"

    engine_args = {
        'max_height': display_conf['max_height'],
        'max_width': display_conf['max_width'],
        'start': content_conf['emphasis_start'],
        'end': content_conf['emphasis_end'],
    }

    install_signal_handlers()
    try:
        if backend == 'dialog':
            with tempfile.TemporaryFile(mode='w+', prefix='helpcc-') as channel:
                display = DialogDisplay(channel, engine_args['start'], engine_args['end'])
                NavigationEngine(root, display, **engine_args).run()
        else:
            def _curses_main(stdscr):
                display = TerminalDisplay(stdscr, display_conf['colors'],
                                          engine_args['start'], engine_args['end'])
                NavigationEngine(root, display, **engine_args).run()
            curses.wrapper(_curses_main)
    finally:
        clear_screen()
    logger.info("Session ended")


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Help Command Center - interactive command reference")
    parser.add_argument("--config", default=None, help="Path to config file (default: config.yaml)")
    parser.add_argument("--backend", choices=BACKENDS, help="Display backend")
    parser.add_argument("--content", help="Path to a content YAML file")
    parser.add_argument("--version", action="store_true", help="Show version information")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_arguments(argv)
    if args.version:
        print(f"Help Command Center version {__version__}")
        return 0

    try:
        config = load_config(args.config)
        if args.backend:
            config['display']['backend'] = args.backend
        if args.content:
            config['content']['path'] = args.content
        setup_logging(config['logging'])
        provider = ContentProvider.load(config['content']['path'])
        run_session(config, provider)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
    except (ConfigError, ContentError, DependencyError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except TERMINAL_ERRORS as e:
        logger.error(f"Terminal error: {e}")
        print(f"Error: terminal could not be initialised: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
