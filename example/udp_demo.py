import time

from liveprops import ProtocolError, Timeout, connect
from liveprops.ns import Chain

def main():
    # Talks to a host listening on LIVEPROPS_HOST:LIVEPROPS_PORT (default 127.0.0.1:9001)
    # Run the host-side remote script first; without it every request times out
    client = connect(timeout=2.0)

    try:
        volume = client.get_prop("live_set tracks 0 mixer_device volume value")
        print("Track 0 volume:", volume)
    except (Timeout, ProtocolError) as e:
        print("No answer from host (expected if it is not running):", e)

    # Watch a chain's name for a moment
    chain = Chain(client, path="live_set tracks 0 devices 0 chains 0")
    try:
        chain.add_name_listener(lambda name: print("Chain renamed:", name))
        time.sleep(5.0)
    except (Timeout, ProtocolError) as e:
        print("Could not observe chain name:", e)

    client.close()

if __name__ == "__main__":
    main()
