"""
Associated token account helpers.

ATAs are derived from (owner, mint) and may or may not exist on-chain; the
relay never caches existence. Derivation goes through find_program_address and
does not require the owner to be on the ed25519 curve, so PDA-owned recipients
(multisigs, vaults) are accepted.
"""

from __future__ import annotations

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from spl.token.instructions import create_associated_token_account, get_associated_token_address

from presale_relay.presale.network import AccountExistence


def derive_ata(owner: Pubkey, mint: Pubkey) -> Pubkey:
    return get_associated_token_address(owner, mint)


def needs_creation(existence: AccountExistence) -> bool:
    """
    UNKNOWN is treated as absent.

    Known race: the account can be created between the lookup and the
    broadcast, in which case the create instruction fails the whole transaction
    at preflight and the client has to request a fresh build.
    """
    return existence is not AccountExistence.CONFIRMED


def create_ata_instruction(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> Instruction:
    return create_associated_token_account(payer=payer, owner=owner, mint=mint)
