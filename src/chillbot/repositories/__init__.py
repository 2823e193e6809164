"""
Guild record storage.

Public API:

- :class:`~chillbot.repositories.guild_repo.GuildRepository`: the abstract
  checkout/return contract and ``wait_for_checkout``.
- :class:`~chillbot.repositories.file_guild_repo.FileGuildRepository`: one
  JSON file per guild, locked with ``fcntl.flock``.
- :class:`~chillbot.repositories.blob_guild_repo.AzureBlobGuildRepository`:
  one blob per guild, locked with a blob lease.
- :func:`~chillbot.repositories.repo_factory.build_guild_repository`: picks a
  backend from the application config.
"""
