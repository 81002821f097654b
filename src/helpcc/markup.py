"""Emphasis markup parsing and box sizing for page and menu views."""

EMPHASIS_START = '\\Z1'
EMPHASIS_END = '\\Z0'

# Border, padding and button row around a page or menu body.
BOX_PADDING_X = 4
PAGE_PADDING_Y = 4
MENU_PADDING_Y = 7

MIN_WIDTH = 30
MIN_HEIGHT = 7


def parse_emphasis(text, start=EMPHASIS_START, end=EMPHASIS_END):
    """Split ``text`` into lines of ``(text, emphasized)`` segments.

    A span opened by ``start`` and closed by ``end`` is emphasized and may
    cross line breaks. An unterminated span runs to the end of the text. An
    ``end`` with no open span, or a ``start`` inside an open span, is kept as
    literal text.
    """
    lines = [[]]
    emphasized = False
    pos = 0
    buf = []

    def flush():
        if buf:
            lines[-1].append((''.join(buf), emphasized))
            buf.clear()

    while pos < len(text):
        if not emphasized and text.startswith(start, pos):
            flush()
            emphasized = True
            pos += len(start)
        elif emphasized and text.startswith(end, pos):
            flush()
            emphasized = False
            pos += len(end)
        elif text[pos] == '\n':
            flush()
            lines.append([])
            pos += 1
        else:
            buf.append(text[pos])
            pos += 1
    flush()
    return [_merge(line) for line in lines]


def _merge(segments):
    merged = []
    for chunk, emphasized in segments:
        if merged and merged[-1][1] == emphasized:
            merged[-1] = (merged[-1][0] + chunk, emphasized)
        else:
            merged.append((chunk, emphasized))
    return merged


def line_text(segments):
    return ''.join(chunk for chunk, _ in segments)


def strip_markup(text, start=EMPHASIS_START, end=EMPHASIS_END):
    """Return the visible text with emphasis markers removed."""
    return '\n'.join(line_text(line) for line in parse_emphasis(text, start, end))


def wrap_segments(segments, width):
    """Break one line of segments into rows no wider than ``width``."""
    if width <= 0:
        raise ValueError("width must be positive")
    rows = [[]]
    used = 0
    for chunk, emphasized in segments:
        while chunk:
            room = width - used
            if room == 0:
                rows.append([])
                used = 0
                room = width
            piece, chunk = chunk[:room], chunk[room:]
            rows[-1].append((piece, emphasized))
            used += len(piece)
    return rows


def wrap_lines(lines, width):
    """Wrap every parsed line, keeping blank lines as empty rows."""
    rows = []
    for segments in lines:
        rows.extend(wrap_segments(segments, width))
    return rows


def _clamp(value, low, high):
    return max(low, min(value, high))


def page_dimensions(title, body, max_height, max_width,
                    start=EMPHASIS_START, end=EMPHASIS_END):
    """Compute ``(height, width)`` of a box that fits a page.

    Text wider than ``max_width`` is wrapped by the renderer and text taller
    than ``max_height`` scrolls, so both are simply clamped here.
    """
    lines = parse_emphasis(body, start, end)
    longest = max([len(line_text(line)) for line in lines] + [len(title)])
    width = _clamp(longest + BOX_PADDING_X, MIN_WIDTH, max_width)
    inner_width = max(1, width - BOX_PADDING_X)
    rows = len(wrap_lines(lines, inner_width))
    height = _clamp(rows + PAGE_PADDING_Y, MIN_HEIGHT, max_height)
    return height, width


def menu_dimensions(title, prompt, labels, max_height, max_width):
    """Compute ``(height, width)`` of a box that fits a menu and its entries."""
    longest = max([len(title), len(prompt)] + [len(label) for label in labels])
    width = _clamp(longest + BOX_PADDING_X + 6, MIN_WIDTH, max_width)
    height = _clamp(len(labels) + MENU_PADDING_Y, MIN_HEIGHT, max_height)
    return height, width
