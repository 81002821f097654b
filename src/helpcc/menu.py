"""Menu structure, user selections and the navigation stack."""
import weakref

MENU = 'menu'
PAGE = 'page'


class MenuNode:
    """Represents a single item in the menu tree.

    Menu nodes get their children from ``loader`` the first time they are
    read, so only the part of the tree a user actually visits is built.
    """
    def __init__(self, node_id, title, kind, label=None, parent=None, loader=None,
                 prompt=None, body=None, height=None, width=None):
        self.id = node_id
        self.title = title
        self.label = label or title
        self.kind = kind
        self.prompt = prompt
        self.body = body
        self.height = height
        self.width = width
        self._parent = weakref.ref(parent) if parent is not None else None
        self._loader = loader
        self._children = None

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def is_submenu(self):
        return self.kind == MENU

    @property
    def children(self):
        """Ordered ``(shortcut, node)`` pairs; empty for pages."""
        if self.kind != MENU:
            return []
        if self._children is None:
            entries = self._loader(self) if self._loader else []
            self._children = [(str(i + 1), node) for i, node in enumerate(entries)]
        return self._children

    @property
    def is_loaded(self):
        return self._children is not None

    def __repr__(self):
        return f"MenuNode({self.id!r}, kind={self.kind!r})"


class Selection:
    """Outcome of one interaction with a rendered menu."""
    CHILD = 'child'
    BACK = 'back'
    EXIT = 'exit'
    CANCEL = 'cancel'

    def __init__(self, kind, index=None):
        self.kind = kind
        self.index = index

    @classmethod
    def child(cls, index):
        return cls(cls.CHILD, index)

    @classmethod
    def back(cls):
        return cls(cls.BACK)

    @classmethod
    def exit(cls):
        return cls(cls.EXIT)

    @classmethod
    def cancel(cls):
        return cls(cls.CANCEL)

    @classmethod
    def from_choice(cls, choice):
        """Translate a raw menu tag into a Selection.

        Tags ``"1"``..``"n"`` select a child, ``"0"`` means back. Anything
        else (empty output, garbage, negative numbers) is a cancel.
        """
        choice = str(choice).strip() if choice is not None else ''
        if not choice.isdecimal():
            return cls.cancel()
        number = int(choice)
        if number == 0:
            return cls.back()
        return cls.child(number - 1)

    def __eq__(self, other):
        if not isinstance(other, Selection):
            return NotImplemented
        return (self.kind, self.index) == (other.kind, other.index)

    def __hash__(self):
        return hash((self.kind, self.index))

    def __repr__(self):
        if self.kind == self.CHILD:
            return f"Selection.child({self.index})"
        return f"Selection.{self.kind}()"


class NavigationStack:
    """Stack of open menus for one session, root at index 0.

    Popping the root ends the session instead of leaving an empty stack
    behind while the session is still considered active.
    """
    def __init__(self, root):
        self._nodes = [root]

    @property
    def active(self):
        return bool(self._nodes)

    @property
    def top(self):
        return self._nodes[-1] if self._nodes else None

    def __len__(self):
        return len(self._nodes)

    def push(self, node):
        if not node.is_submenu:
            raise ValueError(f"Only menus can be opened, got {node!r}")
        self._nodes.append(node)

    def pop(self):
        return self._nodes.pop() if self._nodes else None

    def end(self):
        self._nodes.clear()

    def state(self):
        return list(self._nodes)
