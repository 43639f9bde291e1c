"""
Edge Swap Script - Buy and sell ERC20/BEP20 tokens on Ethereum and BSC
Routes every swap through the edge router, picking the first V3 fee tier
or V2 pool that can fill it
"""

import sys
import logging
from dotenv import load_dotenv

from trading import (
    TradeExecutor,
    TokenScanner,
    TradeError,
    load_networks,
    load_trading_defaults,
)
from trading.config import NATIVE_DECIMALS
from trading.units import (
    format_units,
    is_raw_amount,
    parse_percentage,
    parse_raw_amount,
    parse_units,
    percentage_of,
    slippage_pct_to_bps,
)

# Setup logging
logging.basicConfig(
    format='%(asctime)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)

load_dotenv()


def detect_network(token_address: str) -> str:
    """Ask DexScreener which supported network has the most liquidity"""
    scan = TokenScanner().scan_token(token_address)
    if not scan:
        return ''

    token = scan['token']
    print(f"\nFound {token['name']} ({token['symbol']}) on {scan['network']}")
    print(f"  Price: ${token['price_usd']}")
    print(f"  Liquidity: ${token['liquidity_usd']:,.0f}")
    print(f"  DEX: {token['dex']}")
    return scan['network']


def describe_sell_amount(amount: str, token_balance: dict) -> str:
    """
    Resolve a sell amount the way execute_sell will, for confirmation

    Digit-only input is base units: "5" is 5 base units, "5.0" is five tokens.

    Args:
        amount: Amount as typed (tokens, base units or N%)
        token_balance: Result of TradeExecutor.get_token_balance

    Returns:
        Human readable amount in tokens
    """
    text = amount.strip()
    symbol, decimals = token_balance['symbol'], token_balance['decimals']

    if text.endswith('%'):
        raw = percentage_of(token_balance['balance'], parse_percentage(text))
        return f"{text} of balance = {format_units(raw, decimals)} {symbol}"
    if is_raw_amount(text):
        raw = parse_raw_amount(text)
        return f"{format_units(raw, decimals)} {symbol} ({raw} base units)"
    return f"{format_units(parse_units(text, decimals), decimals)} {symbol}"


def fail(message: str):
    logger.error(message)
    sys.exit(1)


def main():
    """Main execution function"""
    print("=" * 60)
    print("Edge Swap - ETH/BSC Token Trader")
    print("=" * 60)
    print()

    networks = load_networks()
    defaults = load_trading_defaults()

    # Token
    token_address = input("Token address: ").strip()
    if not token_address:
        fail("Token address is required")

    # Network (default: auto-detect)
    network = input(f"Network ({'/'.join(networks)}, blank to auto-detect): ").strip().upper()
    if not network:
        network = detect_network(token_address)
        if not network:
            fail("Could not detect a supported network for this token")

    # Private key
    private_key = input("Enter your private key (hex): ").strip()
    if not private_key:
        fail("Private key is required")

    # Initialize executor
    try:
        executor = TradeExecutor(
            networks.get(network, network),
            private_key,
            confirmation_timeout=defaults.confirmation_timeout
        )
        executor.client.ensure_connected()
        balance = executor.client.get_balance()
        token_balance = executor.get_token_balance(token_address)
    except TradeError as e:
        fail(f"Failed to initialize: {e}")

    native_symbol = executor.network.native_symbol
    print(f"\nYour {native_symbol} Balance: {format_units(balance, NATIVE_DECIMALS)} {native_symbol}")
    print(f"Your {token_balance['symbol']} Balance: {token_balance['formatted']}\n")

    # Direction
    action = input("Buy or sell? (b/s): ").strip().lower()
    if action not in ('b', 's', 'buy', 'sell'):
        fail(f"Unknown action: {action}")

    # Amount
    try:
        if action.startswith('b'):
            amount = input(f"Amount in {native_symbol}: ").strip()
            summary = f"Buy {token_balance['symbol']} with {amount} {native_symbol}"
        else:
            amount = input(
                f"Amount of {token_balance['symbol']} "
                f"(tokens with a decimal point e.g. 5.0, base units e.g. 5000000, or N%): "
            ).strip()
            summary = f"Sell {describe_sell_amount(amount, token_balance)}"
    except TradeError as e:
        fail(f"Invalid amount: {e}")

    # Slippage
    default_pct = defaults.slippage_bps / 100
    try:
        slippage_str = input(f"Slippage % (default: {default_pct:g}): ").strip()
        slippage_bps = slippage_pct_to_bps(slippage_str) if slippage_str else defaults.slippage_bps
    except TradeError as e:
        fail(f"Invalid slippage: {e}")

    # Confirm
    print(f"\n{summary}, slippage {slippage_bps / 100:g}%")
    if input("Proceed? (y/n): ").strip().lower() not in ('y', 'yes'):
        print("Trade cancelled")
        return

    # Execute trade
    print("\n" + "=" * 60)
    print("Executing trade...")
    print("=" * 60)
    print()

    try:
        if action.startswith('b'):
            result = executor.execute_buy(token_address, amount, slippage_bps, defaults.gas_limit)
            received = f"{result.formatted_out} {result.token_symbol}"
        else:
            result = executor.execute_sell(token_address, amount, slippage_bps, defaults.gas_limit)
            received = f"{result.formatted_out} {native_symbol}"
    except TradeError as e:
        print("\n" + "=" * 60)
        print(f"Trade failed: {e}")
        print("=" * 60)
        sys.exit(1)

    print("\n" + "=" * 60)
    print("Trade completed successfully!")
    print(f"  Venue: {result.venue.value}" + (f" ({result.fee_tier / 10000:g}%)" if result.fee_tier else ''))
    print(f"  Expected: ~{received}")
    print(f"  Transaction: {result.explorer_url}")
    print("=" * 60)


if __name__ == "__main__":
    main()
