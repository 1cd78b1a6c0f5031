"""
Presale transaction builder.

Assembles the presale payment for a sender wallet, co-signs it with the server
key and returns it base64-encoded for the client to add the fee-payer
signature. Instruction order is transaction order:

  1. set_compute_unit_price (fixed priority fee)
  2. zero-lamport system transfer server -> server (forces the server signature)
  3. create sender ATA, only if it does not exist (payer = sender)
  4. create recipient ATA, only if it does not exist (payer = sender)
  5. transfer_checked sender ATA -> recipient ATA for amount * 10**decimals
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from solders.compute_budget import set_compute_unit_price
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import TransferCheckedParams, transfer_checked

from presale_relay.config.settings import DEFAULT_PRESALE_AMOUNT, RelayConfig
from presale_relay.core.exceptions import BuildFailed, InvalidInput
from presale_relay.logging import get_logger
from presale_relay.presale.accounts import create_ata_instruction, derive_ata, needs_creation
from presale_relay.presale.network import Checkpoint, RpcGateway

logger = get_logger(__name__)

U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class BuiltTransaction:
    """Partially-signed presale transaction plus the checkpoint the client must echo back."""

    transaction: Transaction
    serialized: str
    blockhash: str
    last_valid_block_height: int

    def to_response(self) -> dict[str, Any]:
        return {
            "transaction": self.serialized,
            "lastValidBlockHeight": self.last_valid_block_height,
            "blockhash": self.blockhash,
        }


def parse_sender(sender_address: Any) -> Pubkey:
    if sender_address is None or (isinstance(sender_address, str) and not sender_address.strip()):
        raise InvalidInput("Missing senderPublicKey")
    if not isinstance(sender_address, str):
        raise InvalidInput("Invalid senderPublicKey")
    try:
        return Pubkey.from_string(sender_address.strip())
    except Exception as e:
        raise InvalidInput("Invalid senderPublicKey") from e


def parse_amount(amount: Any) -> Decimal:
    """Presale amount in whole tokens. Accepts numbers or numeric strings; None means the default."""
    if amount is None:
        amount = DEFAULT_PRESALE_AMOUNT
    if isinstance(amount, bool) or not isinstance(amount, (int, float, str, Decimal)):
        raise InvalidInput("Invalid presaleAmount")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise InvalidInput("Invalid presaleAmount") from e
    if not value.is_finite() or value <= 0:
        raise InvalidInput("presaleAmount must be a positive number")
    return value


def to_base_units(amount: Decimal, decimals: int) -> int:
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidInput(f"presaleAmount has more than {decimals} decimal places")
    units = int(scaled)
    if units > U64_MAX:
        raise InvalidInput("presaleAmount is too large")
    return units


class TransactionBuilder:
    """Builds presale transactions; holds no per-request state."""

    def __init__(self, config: RelayConfig, gateway: RpcGateway) -> None:
        self._config = config
        self._gateway = gateway

    def build(self, sender_address: Any, amount: Any = DEFAULT_PRESALE_AMOUNT) -> BuiltTransaction:
        cfg = self._config
        sender = parse_sender(sender_address)
        base_units = to_base_units(parse_amount(amount), cfg.mint_decimals)
        server = cfg.server_pubkey

        sender_ata = derive_ata(sender, cfg.mint)
        recipient_ata = derive_ata(cfg.recipient, cfg.mint)
        sender_ata_state = self._gateway.account_existence(sender_ata)
        recipient_ata_state = self._gateway.account_existence(recipient_ata)

        instructions: list[Instruction] = [set_compute_unit_price(cfg.priority_fee_micro_lamports)]

        checkpoint = self._fetch_checkpoint()
        adjusted_last_valid = checkpoint.last_valid_block_height + cfg.validity_window

        instructions.append(transfer(TransferParams(from_pubkey=server, to_pubkey=server, lamports=0)))

        if needs_creation(sender_ata_state):
            logger.info("presale_create_sender_ata", sender=str(sender), ata=str(sender_ata), existence=sender_ata_state.value)
            instructions.append(create_ata_instruction(payer=sender, owner=sender, mint=cfg.mint))
        if needs_creation(recipient_ata_state):
            logger.info("presale_create_recipient_ata", ata=str(recipient_ata), existence=recipient_ata_state.value)
            instructions.append(create_ata_instruction(payer=sender, owner=cfg.recipient, mint=cfg.mint))

        instructions.append(
            transfer_checked(
                TransferCheckedParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=sender_ata,
                    mint=cfg.mint,
                    dest=recipient_ata,
                    owner=sender,
                    amount=base_units,
                    decimals=cfg.mint_decimals,
                )
            )
        )

        # Fee payer = sender; the client adds that signature later
        message = Message.new_with_blockhash(instructions, sender, checkpoint.blockhash)
        tx = Transaction.new_unsigned(message)
        tx.partial_sign([cfg.server_keypair], checkpoint.blockhash)

        built = BuiltTransaction(
            transaction=tx,
            serialized=base64.b64encode(bytes(tx)).decode("ascii"),
            blockhash=str(checkpoint.blockhash),
            last_valid_block_height=adjusted_last_valid,
        )
        logger.info(
            "presale_tx_built",
            sender=str(sender),
            amount_base_units=base_units,
            instruction_count=len(instructions),
            blockhash=built.blockhash,
            last_valid_block_height=adjusted_last_valid,
        )
        return built

    def _fetch_checkpoint(self) -> Checkpoint:
        try:
            return self._gateway.latest_checkpoint()
        except Exception as e:
            logger.error("presale_blockhash_fetch_failed", error=str(e))
            raise BuildFailed(str(e)) from e
