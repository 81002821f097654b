"""Tests for the navigation engine state machine."""
import random

import pytest

from helpcc.content import ContentProvider
from helpcc.main import NavigationEngine
from helpcc.menu import Selection


class ScriptedDisplay:
    """Display double that replays a fixed list of menu selections."""

    def __init__(self, selections):
        self.selections = list(selections)
        self.menus = []
        self.pages = []
        self.back_labels = []

    def render_menu(self, title, prompt, entries, height, width, back_label='Back'):
        self.menus.append(title)
        self.back_labels.append(back_label)
        return self.selections.pop(0)

    def render_page(self, title, body, height, width):
        self.pages.append((title, body, height, width))


@pytest.fixture
def scenario_a():
    """Root with a submenu and a page."""
    return ContentProvider({
        'root': {'title': 'Root', 'items': ['git', 'network']},
        'git': {'title': 'Git', 'items': [{'id': 'git_config', 'label': 'Configuration'}]},
        'git_config': {'title': 'Git - Configuration', 'body': '\\Z1git config\\Z0 sets options'},
        'network': {'title': 'Network', 'body': 'ip link show'},
    })


@pytest.fixture
def scenario_b():
    """Three levels of menus ending in a page."""
    return ContentProvider({
        'root': {'title': 'Root', 'items': ['package']},
        'package': {'title': 'Package', 'items': ['removal']},
        'removal': {'title': 'Removal', 'items': ['purge']},
        'purge': {'title': 'purge', 'body': 'sudo apt purge name', 'height': 12, 'width': 50},
    })


def make_engine(provider, selections=()):
    display = ScriptedDisplay(selections)
    return NavigationEngine(provider.build_tree('root'), display), display


def ids(engine):
    return [node.id for node in engine.stack.state()]


class TestScenarios:
    """End-to-end navigation scenarios."""

    def test_scenario_a(self, scenario_a):
        """Test entering a submenu, backing out and viewing a page."""
        engine, display = make_engine(scenario_a)

        engine.dispatch(Selection.child(0))
        assert ids(engine) == ['root', 'git']

        engine.dispatch(Selection.back())
        assert ids(engine) == ['root']

        engine.dispatch(Selection.child(1))
        assert [page[0] for page in display.pages] == ['Network']
        assert ids(engine) == ['root']

    def test_scenario_b(self, scenario_b):
        """Test three backs return to root and a fourth ends the session."""
        engine, display = make_engine(scenario_b)

        engine.dispatch(Selection.child(0))
        engine.dispatch(Selection.child(0))
        engine.dispatch(Selection.child(0))
        assert ids(engine) == ['root', 'package', 'removal']
        assert display.pages[0][0] == 'purge'

        engine.dispatch(Selection.back())
        engine.dispatch(Selection.back())
        assert ids(engine) == ['root']
        assert engine.active

        engine.dispatch(Selection.back())
        assert not engine.active

    def test_scenario_b_run_loop(self, scenario_b):
        """Test the run loop renders each menu and stops at root exit."""
        engine, display = make_engine(scenario_b, [
            Selection.child(0), Selection.child(0), Selection.child(0),
            Selection.back(), Selection.back(), Selection.exit(),
        ])
        engine.run()

        assert display.menus == ['Root', 'Package', 'Removal', 'Removal', 'Package', 'Root']
        assert display.selections == []
        assert not engine.active

    def test_explicit_page_dimensions_are_used(self, scenario_b):
        """Test a page with height and width keeps them."""
        engine, display = make_engine(scenario_b)
        for _ in range(3):
            engine.dispatch(Selection.child(0))
        _, _, height, width = display.pages[0]
        assert (height, width) == (12, 50)

    def test_page_dimensions_computed_from_text(self, scenario_a):
        """Test a page without explicit size is sized to its content."""
        engine, display = make_engine(scenario_a)
        engine.dispatch(Selection.child(1))
        _, body, height, width = display.pages[0]
        assert width >= len(body)
        assert height <= engine.max_height
        assert width <= engine.max_width


class TestRootBehaviour:
    """Test leaving the session from the root menu."""

    @pytest.mark.parametrize('selection', [Selection.exit(), Selection.cancel(), Selection.back()])
    def test_root_selection_ends_session(self, scenario_a, selection):
        """Test exit, cancel and back all end the session at root."""
        engine, display = make_engine(scenario_a, [selection])
        engine.run()
        assert not engine.active
        assert display.menus == ['Root']

    def test_back_label_depends_on_depth(self, scenario_a):
        """Test root offers Exit while submenus offer Back."""
        engine, display = make_engine(scenario_a, [
            Selection.child(0), Selection.back(), Selection.exit(),
        ])
        engine.run()
        assert display.back_labels == ['Exit', 'Back', 'Exit']

    def test_exit_from_submenu_ends_session(self, scenario_b):
        """Test exit below the root also ends the session."""
        engine, _ = make_engine(scenario_b)
        engine.dispatch(Selection.child(0))
        engine.dispatch(Selection.exit())
        assert not engine.active


class TestStackProperties:
    """Invariants of the navigation stack."""

    def test_cancel_below_root_pops(self, scenario_a):
        """Test cancel in a submenu behaves like back."""
        engine, _ = make_engine(scenario_a)
        engine.dispatch(Selection.child(0))
        engine.dispatch(Selection.cancel())
        assert ids(engine) == ['root']
        assert engine.active

    def test_back_restores_same_node_references(self, scenario_b):
        """Test push then back leaves identical node objects on the stack."""
        engine, _ = make_engine(scenario_b)
        engine.dispatch(Selection.child(0))
        before = engine.stack.state()

        engine.dispatch(Selection.child(0))
        engine.dispatch(Selection.back())

        after = engine.stack.state()
        assert len(before) == len(after)
        assert all(a is b for a, b in zip(before, after))

    def test_page_dismissal_keeps_stack(self, scenario_a):
        """Test viewing a page leaves the stack unchanged and re-renders the menu."""
        engine, display = make_engine(scenario_a, [
            Selection.child(0), Selection.child(0), Selection.exit(),
        ])
        engine.run()
        assert display.menus == ['Root', 'Git', 'Git']
        assert display.pages[0][0] == 'Git - Configuration'

    @pytest.mark.parametrize('index', [2, 99, -1])
    def test_out_of_range_is_cancel(self, scenario_a, index):
        """Test an index outside the children behaves like cancel."""
        engine, display = make_engine(scenario_a)
        engine.dispatch(Selection.child(0))
        engine.dispatch(Selection.child(index))
        assert ids(engine) == ['root']
        assert display.pages == []

    def test_out_of_range_at_root_ends_session(self, scenario_a):
        """Test an invalid index at root is treated as cancel, which exits."""
        engine, _ = make_engine(scenario_a)
        engine.dispatch(Selection.child(5))
        assert not engine.active

    def test_unknown_selection_value_is_cancel(self, scenario_a):
        """Test a raw non-Selection value never raises."""
        engine, _ = make_engine(scenario_a)
        engine.dispatch(Selection.child(0))
        engine.dispatch('garbage')
        assert ids(engine) == ['root']

    def test_height_matches_open_menus(self, scenario_b):
        """Test the stack always holds exactly the open path of menus."""
        engine, _ = make_engine(scenario_b)
        rng = random.Random(7)
        choices = [Selection.child(0), Selection.child(1), Selection.back(), Selection.cancel()]

        for _ in range(200):
            if not engine.active:
                break
            engine.dispatch(rng.choice(choices))
            if engine.active:
                stack = engine.stack.state()
                assert len(stack) >= 1
                assert all(node.is_submenu for node in stack)
                for parent, child in zip(stack, stack[1:]):
                    assert child.parent is parent


class TestSelection:
    """Test parsing raw menu tags."""

    def test_from_choice_digits(self):
        """Test numeric tags map to children and zero to back."""
        assert Selection.from_choice('1') == Selection.child(0)
        assert Selection.from_choice('12\n') == Selection.child(11)
        assert Selection.from_choice('0') == Selection.back()

    @pytest.mark.parametrize('raw', ['', None, 'abc', '-1', '1.5'])
    def test_from_choice_unrecognized(self, raw):
        """Test anything else becomes cancel."""
        assert Selection.from_choice(raw) == Selection.cancel()
