from __future__ import annotations
from typing import Any, Optional, Union

from .client import LiveClient
from .codecs import Codecs
from .config import ClientConfig
from .transport import Transport

def connect(config: Optional[ClientConfig] = None,
            *,
            transport: Union[str, Transport] = "udp",
            codec: Union[str, Any, None] = None,
            auto_start: bool = True,
            **overrides) -> LiveClient:
    """
    One-liner factory:
      connect()                                       # LIVEPROPS_* env or defaults, UDP
      connect(host="10.0.0.5", port=9001, codec="msgpack")
      connect(transport=my_transport_instance, codec=my_codec_instance)

    - config: ClientConfig; when omitted it is built from the environment,
      with **overrides applied on top
    - transport: "udp" | Transport instance
    - codec: "json" | "msgpack" | Codec instance (defaults to config.codec)
    - auto_start: start the transport and dispatch workers immediately
    """
    if config is None:
        config = ClientConfig.from_env(**overrides)
    elif overrides:
        raise TypeError("Pass either a ClientConfig or keyword overrides, not both.")

    # Resolve codec
    if codec is None:
        codec_obj = Codecs.get(config.codec)
    elif isinstance(codec, str):
        codec_obj = Codecs.get(codec)
    else:
        codec_obj = codec

    # Resolve transport
    if isinstance(transport, str):
        tlabel = transport.lower()
        if tlabel == "udp":
            from .transports.udp import UdpTransport
            t = UdpTransport(config.host, config.port,
                             bind_host=config.bind_host, bind_port=config.bind_port)
        else:
            raise ValueError(f"Unknown transport label: {transport}")
    else:
        t = transport

    client = LiveClient(t, timeout=config.timeout, codec=codec_obj)
    if auto_start:
        client.start()
    return client
