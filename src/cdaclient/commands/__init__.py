"""Built-in CLI sub-commands for the ``cda`` tool.

* :mod:`~cdaclient.commands.fetch` -- ``space``, ``content-types``,
  ``content-type``, ``entries``, ``entry``, ``assets`` and ``asset``.
* :mod:`~cdaclient.commands.sync` -- ``sync``, initial or from a token.
* :mod:`~cdaclient.commands.profile` -- manage saved space profiles.
* :mod:`~cdaclient.commands.common` -- client construction and error
  handling shared by the fetch commands.

Single commands are plain callback functions registered on the root app;
``profile`` is a :class:`typer.Typer` sub-application.
"""
