"""RU: playvideo: просмотр медиа в терминале через внешние инструменты.

EN: playvideo: preview media in a terminal through external tools.
"""

__version__ = "0.1.0"
