"""
Capability tokens.

Authorization is resolved at the boundary, not inside the engine. The
:class:`Authorizer` compares the caller's identity with the roles recorded
on a game and mints typed tokens; engine operations accept those tokens as
already-validated facts and only check that the token is of the right kind
and bound to the right game.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Union

from .errors import AuthorizationError, ErrorCode
from .models import GameInstance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployOwner:
    """Proof the caller may create a game."""
    owner: str


@dataclass(frozen=True)
class ConfigAuthority:
    """Proof the caller is the configuration authority of a game."""
    authority: str


@dataclass(frozen=True)
class DevPayee:
    """Proof the caller may trigger the dev payout of a game."""
    authority: str
    caller: str


@dataclass(frozen=True)
class PlayerSigner:
    """Proof the caller signs as ``player_id``."""
    player_id: str


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class Authorizer:
    """Mints capability tokens after checking identities."""

    def __init__(self, deploy_owner: str):
        self._deploy_owner = deploy_owner

    def deploy_owner(self, signer: str) -> DeployOwner:
        if not _same(signer, self._deploy_owner):
            logger.warning(f"Rejected deploy by {signer}")
            raise AuthorizationError(ErrorCode.INVALID_OWNER)
        return DeployOwner(owner=signer)

    def config_authority(self, game: GameInstance, signer: str) -> ConfigAuthority:
        if not _same(signer, game.authority):
            logger.warning(f"Rejected config access by {signer}")
            raise AuthorizationError(ErrorCode.INVALID_SIGNER)
        return ConfigAuthority(authority=game.authority)

    def dev_payee(self, game: GameInstance, signer: str) -> DevPayee:
        allowed = (game.authority,) + game.dev_payees()
        if not any(_same(signer, candidate) for candidate in allowed):
            logger.warning(f"Rejected dev payout by {signer}")
            raise AuthorizationError(ErrorCode.INVALID_SIGNER)
        return DevPayee(authority=game.authority, caller=signer)

    def player(self, signer: str) -> PlayerSigner:
        if not signer:
            raise AuthorizationError(ErrorCode.INVALID_SIGNER)
        return PlayerSigner(player_id=signer)


Token = Union[DeployOwner, ConfigAuthority, DevPayee, PlayerSigner]


def require_config_authority(token: Optional[Token], game: GameInstance) -> ConfigAuthority:
    if not isinstance(token, ConfigAuthority) or token.authority != game.authority:
        raise AuthorizationError(ErrorCode.INVALID_SIGNER)
    return token


def require_dev_payee(token: Optional[Token], game: GameInstance) -> DevPayee:
    if not isinstance(token, DevPayee) or token.authority != game.authority:
        raise AuthorizationError(ErrorCode.INVALID_SIGNER)
    return token


def require_player(token: Optional[Token], player_id: str) -> PlayerSigner:
    if not isinstance(token, PlayerSigner) or token.player_id != player_id:
        raise AuthorizationError(ErrorCode.INVALID_SIGNER)
    return token
