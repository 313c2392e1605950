"""cachegate -- Offline-first request interception for httpx clients.

This package sits between a client application and the network. Every
outbound request is classified by URL shape and answered by one of three
fixed caching strategies, so the application keeps working with degraded or
absent connectivity. Mutations made while offline are queued and committed
in batches when connectivity returns.

Typical library use::

    async with Gateway(config) as gateway:
        async with httpx.AsyncClient(transport=OfflineTransport(gateway)) as client:
            response = await client.get("http://localhost:3000/api/content/trending")

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration loading and precedence resolution.
    classifier: Maps a request to its caching category.
    engine: The three caching strategies and cache activation.
    sync: Deferred-write synchronisation coordinator.
    gateway: Wires store, queue, network, engine and coordinator together.
    transport: httpx transport that routes requests through the engine.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
