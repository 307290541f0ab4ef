"""Oracle price inputs for sizing a pool's initial liquidity."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import IntEnum
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from .errors import ConfigurationError


class OraclePriority(IntEnum):
    PYTH_ONLY = 0
    SERUM_ONLY = 1

    @classmethod
    def from_name(cls, name: str) -> "OraclePriority":
        try:
            return cls[name]
        except KeyError:
            raise ConfigurationError(f"Unknown oracle priority: {name}") from None


@dataclass
class PythProduct:
    product: Pubkey
    price: Pubkey


@dataclass
class SerumMarket:
    market: Pubkey
    bids: Pubkey
    asks: Pubkey
    mid_price: Optional[Decimal] = None


@dataclass
class PriceBook:
    """USD prices by Pyth product name plus Serum markets by pool name."""

    usd_prices: Dict[str, Decimal] = field(default_factory=dict)
    pyth_products: Dict[str, PythProduct] = field(default_factory=dict)
    serum_markets: Dict[str, SerumMarket] = field(default_factory=dict)
    serum_program_id: Optional[Pubkey] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PriceBook":
        book = cls()
        for name, price in (config.get("prices") or {}).items():
            book.usd_prices[name] = to_decimal(price, f"prices.{name}")
        for entry in config.get("pyth") or []:
            book.pyth_products[entry["productName"]] = PythProduct(
                product=Pubkey.from_string(entry["product"]),
                price=Pubkey.from_string(entry["price"]),
            )
        serum = config.get("serum") or {}
        if serum.get("serumProgramId"):
            book.serum_program_id = Pubkey.from_string(serum["serumProgramId"])
        for entry in serum.get("serumMarkets") or []:
            label = f"serum market {entry['marketName']}"
            mid = entry.get("marketPrice")
            if mid is not None:
                mid_price = to_decimal(mid, label)
            elif entry.get("bestBid") is not None and entry.get("bestAsk") is not None:
                mid_price = serum_mid_price(
                    to_decimal(entry["bestBid"], f"{label} bestBid"),
                    to_decimal(entry["bestAsk"], f"{label} bestAsk"),
                )
            else:
                mid_price = None
            book.serum_markets[entry["marketName"]] = SerumMarket(
                market=Pubkey.from_string(entry["marketAddress"]),
                bids=Pubkey.from_string(entry["bidsAddress"]),
                asks=Pubkey.from_string(entry["asksAddress"]),
                mid_price=mid_price,
            )
        return book

    def pyth_product(self, product_name: Optional[str]) -> PythProduct:
        if not product_name or product_name not in self.pyth_products:
            raise ConfigurationError(f"No Pyth accounts configured for {product_name!r}")
        return self.pyth_products[product_name]

    def serum_market(self, pool_name: str) -> SerumMarket:
        if pool_name not in self.serum_markets:
            raise ConfigurationError(f"No Serum market configured for pool {pool_name}")
        return self.serum_markets[pool_name]

    def usd_price(self, symbol: str, product_name: Optional[str], fixed: Optional[Decimal] = None) -> Decimal:
        if fixed is not None:
            return fixed
        if product_name and product_name in self.usd_prices:
            return self.usd_prices[product_name]
        raise ConfigurationError(f"No USD price for token {symbol}")


def to_decimal(value: Any, label: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigurationError(f"{label} is not a number: {value!r}") from exc
    if not number.is_finite() or number <= 0:
        raise ConfigurationError(f"{label} must be positive, got {value}")
    return number


def serum_mid_price(best_bid: Any, best_ask: Any) -> Decimal:
    """Order book midpoint, used when a market entry gives best bid/ask instead of marketPrice."""
    return (Decimal(str(best_bid)) + Decimal(str(best_ask))) / 2


def initial_amount(decimals: int, usd_price: Decimal) -> int:
    """Raw token amount worth a tenth of a dollar."""
    if usd_price <= 0:
        raise ConfigurationError(f"USD price must be positive, got {usd_price}")
    amount = Decimal(10) ** decimals / 10 / usd_price
    return int(amount.to_integral_value(rounding=ROUND_FLOOR))
