"""Move calls against the suitter module.

Every entry function takes the shared clock as its last argument. Object
arguments are passed as ids and pure arguments as JSON values; the fullnode
resolves them against the function signature when building.
"""
from typing import Any, List, Optional

from pydantic import BaseModel

import config
from sui_rpc import SuiRpcClient


class MoveCall(BaseModel):
    package_id: str
    module: str
    function: str
    arguments: List[Any]
    type_arguments: List[str] = []

    @property
    def target(self) -> str:
        return f"{self.package_id}::{self.module}::{self.function}"

    def build(self, rpc: SuiRpcClient, sender: str, gas_budget: Optional[int] = None, gas: Optional[str] = None) -> str:
        """Return base64 transaction bytes with `sender` as signer."""
        return rpc.unsafe_move_call(
            signer=sender,
            package_id=self.package_id,
            module=self.module,
            function=self.function,
            arguments=self.arguments,
            gas_budget=gas_budget or config.GAS_BUDGET,
            type_arguments=self.type_arguments,
            gas=gas,
        )


def _call(function: str, *arguments) -> MoveCall:
    return MoveCall(
        package_id=config.PACKAGE_ID,
        module=config.MODULE_NAME,
        function=function,
        arguments=[*arguments, config.SUI_CLOCK_OBJECT_ID],
    )


class TransactionBuilder:
    @staticmethod
    def create_profile(user_address: str, username: str, bio: str, image_url: str) -> MoveCall:
        # user_address carries identity since the sponsor signs
        return _call("create_profile", config.REGISTRY_ID, user_address, username, bio, image_url)

    @staticmethod
    def create_post(profile_id: str, user_address: str, content: str, image_url: str = "") -> MoveCall:
        return _call("create_post", profile_id, user_address, content, image_url)

    @staticmethod
    def update_profile(profile_id: str, username: str, bio: str, image_url: str) -> MoveCall:
        return _call("update_profile", config.REGISTRY_ID, profile_id, username, bio, image_url)

    @staticmethod
    def like_post(profile_id: str, post_id: str) -> MoveCall:
        return _call("like_post", profile_id, post_id)

    @staticmethod
    def unlike_post(like_id: str, profile_id: str, post_id: str) -> MoveCall:
        return _call("unlike_post", like_id, profile_id, post_id)

    @staticmethod
    def follow(profile_id: str, target_profile_id: str) -> MoveCall:
        return _call("follow", profile_id, target_profile_id)

    @staticmethod
    def unfollow(follow_id: str, profile_id: str, target_profile_id: str) -> MoveCall:
        return _call("unfollow", follow_id, profile_id, target_profile_id)

    @staticmethod
    def delete_post(post_id: str, profile_id: str) -> MoveCall:
        return _call("delete_post", post_id, profile_id)

    @staticmethod
    def delete_profile(profile_id: str) -> MoveCall:
        return _call("delete_profile", config.REGISTRY_ID, profile_id)

    @staticmethod
    def create_comment(post_id: str, profile_id: str, content: str) -> MoveCall:
        return _call("create_comment", post_id, profile_id, content)

    @staticmethod
    def create_reply(comment_id: str, profile_id: str, content: str) -> MoveCall:
        return _call("create_reply", comment_id, profile_id, content)
