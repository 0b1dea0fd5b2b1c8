from __future__ import annotations

from typing import List, Optional

from ...schemas import Build, Catalog
from ..types import Issue, ValidationContext, error


def socket_rule(
    build: Build,
    catalog: Optional[Catalog] = None,
    context: Optional[ValidationContext] = None,
) -> List[Issue]:
    """Every CPU must sit in a socket of the motherboard's type."""
    issues: List[Issue] = []
    for i, node in enumerate(build.nodes):
        if node.motherboard is None or not node.cpus:
            continue
        board_socket = node.motherboard.constraints.socket
        for j, cpu in enumerate(node.cpus):
            if cpu.constraints.socket != board_socket:
                issues.append(
                    error(
                        "SOCKET_MISMATCH",
                        f"nodes[{i}].cpus[{j}]",
                        f"CPU socket {cpu.constraints.socket} incompatible with "
                        f"motherboard socket {board_socket}",
                    )
                )
    return issues
