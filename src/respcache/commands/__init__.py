"""Built-in ``respcache`` sub-commands: ``get``, ``cache`` and ``config``."""
