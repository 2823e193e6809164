"""
Chill Bot - opt-in channel management for Discord servers.

Chill Bot lets members create, discover, join and leave hidden "opt-in"
channels, and greets new members with a listing of what they can join.

Core Components:

- **Guild Repositories**: Per-guild configuration records stored either as
  files on local disk or as blobs in Azure Storage, checked out under an
  exclusive lock (file lock or blob lease) for every read-modify-write
- **Borrowed Guilds**: Scoped ownership of a checked-out record with a
  commit flag deciding whether changes are written back on release
- **Read Cache**: Per-guild TTL cache of opt-in channel listings, invalidated
  by every command that changes them
- **Slash Commands**: /create, /join, /leave, /list, /rename, /redescribe and
  server configuration commands
- **Welcome Engine**: Greets new members in the configured welcome channel

Usage:
    from chillbot.main import main
    main()
"""
