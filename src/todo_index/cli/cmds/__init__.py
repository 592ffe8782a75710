from .todo_cmds import RichRenderer
from .todo_cmds import register as register_todo

__all__ = [
    "RichRenderer",
    "register_todo",
]
