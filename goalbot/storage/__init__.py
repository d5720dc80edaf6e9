"""File persistence shared by the goal, vote and evidence stores."""

from goalbot.storage.json_file import JSONFileCollection

__all__ = ["JSONFileCollection"]
