"""Built-in CLI sub-commands for trieve_cli.

* :mod:`~trieve_cli.commands.auth` -- ``login``, ``configure`` and ``whoami``,
  registered directly on the root app.
* :mod:`~trieve_cli.commands.profile` -- the ``profile`` group.
* :mod:`~trieve_cli.commands.organization` -- the ``organization`` group.
* :mod:`~trieve_cli.commands.common` -- option access and error reporting
  shared by the modules above.
"""
