import asyncio
import sys

from hypeserv import EndpointResolver, HostUnreachable, QueryError, query


async def main(query_type: str = "minecraft", host: str = "tzdtwsj.top"):
    try:
        endpoint = await EndpointResolver().resolve(query_type, host)
    except HostUnreachable as e:
        print(e)
        return

    print(f"Resolved {host} to {endpoint.host}:{endpoint.port} (SRV port: {endpoint.port_from_srv})")
    options = {"type": query_type, "host": endpoint.host}
    if endpoint.port is not None:
        options["port"] = endpoint.port

    try:
        result = await query(options)
    except QueryError as e:
        print(f"Server is offline: {e}")
        return

    print(
        f"Server is online running version {result['version']} with {result['numplayers']} out of {result['maxplayers']} players."
    )
    print(f"Name: {result['name']}")
    if result["map"]:
        print(f"Map: {result['map']}")
    print(f"Latency: {result['ping']}ms")
    print(f"Connect to: {result['connect']}")

asyncio.run(main(*sys.argv[1:3]))
