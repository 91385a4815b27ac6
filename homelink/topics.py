# homelink/topics.py
#
# Topic namespace for a client. Every topic lives under
# <prefix>/<client_name>/<name>, with the prefix picked by kind.

CMND = "cmnd"   # commands sent to the device
STAT = "stat"   # state reported by the device
TELE = "tele"   # periodic telemetry

KINDS = (CMND, STAT, TELE)


def build_topic(kind: str, client_name: str, name: str) -> str:
    """
    Build the full topic for a relative name.

    The relative name is used verbatim; it may contain '/' or wildcards.
    """
    if kind not in KINDS:
        raise ValueError(f"Unknown topic kind: {kind!r}")
    return kind + "/" + client_name + "/" + name
