#!/usr/bin/env python

"""
    network_placement.py:
    Subnet and security groups used for the image build instances.
    A stack either receives a concrete placement, or none at all in which case
    the placement is decided at deploy time from template parameters.
"""

from typing import List


class BuildNetworkPlacement:

    def __init__(self, subnet_id: str, security_group_ids: List[str]) -> None:
        if not subnet_id:
            raise ValueError("subnet_id is required for a custom build network placement")
        if not security_group_ids:
            raise ValueError(
                "At least one security group id is required when a custom subnet is used"
            )
        self.subnet_id = subnet_id
        self.security_group_ids = list(security_group_ids)

    def to_infrastructure_properties(self) -> dict:
        return {
            "subnet_id": self.subnet_id,
            "security_group_ids": self.security_group_ids
        }
