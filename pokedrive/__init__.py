"""
Pokémon Drive: the PokéAPI catalog as a read-only virtual folder.

This package is responsible for:
* Fetching the catalog from the upstream API and caching it in a shared store.
* Projecting the cached catalog onto a root / collection / file hierarchy.
* Registering the drive with a host and signalling it after refreshes.
* Serving host and operator calls over HTTP.
"""
