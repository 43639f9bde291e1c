"""
Example script demonstrating TradeExecutor usage
"""

import os
from dotenv import load_dotenv

from trading import TradeExecutor, TradeIntent, Direction, TradeError

load_dotenv()

# CAKE on BSC
EXAMPLE_TOKEN = '0x0E09FaBB73Bd3Ade0a17ECC321fD13a19e81cE82'


def _get_executor():
    private_key = os.getenv('BSC_PRIVATE_KEY')

    if not private_key:
        print("Error: BSC_PRIVATE_KEY not set in .env file")
        print("Add this line to your .env file:")
        print("BSC_PRIVATE_KEY=your_private_key_here")
        return None

    try:
        return TradeExecutor('BSC', private_key)
    except TradeError as e:
        print(f"Error: {e}")
        return None


def example_get_quote_only():
    """Example: Get price and venue without trading"""
    print("Example: Getting quote for 0.1 BNB to CAKE")
    print("=" * 60)

    executor = _get_executor()
    if not executor:
        return

    try:
        price = executor.get_token_price(EXAMPLE_TOKEN, '0.1')
    except TradeError as e:
        print(f"Failed to get quote: {e}")
        return

    print(f"\nQuote received:")
    print(f"  Venue: {price['venue']} (fee tier: {price['fee_tier']})")
    print(f"  Output: {price['price']} CAKE for 0.1 BNB")


def example_buy():
    """Example: Buy 0.01 BNB of CAKE with 5% slippage"""
    print("\nExample: Buying CAKE with 0.01 BNB")
    print("=" * 60)

    executor = _get_executor()
    if not executor:
        return

    intent = TradeIntent(
        token_address=EXAMPLE_TOKEN,
        direction=Direction.BUY,
        amount='0.01',
        slippage_bps=500,
        gas_limit=300000
    )

    try:
        result = executor.execute(intent)
    except TradeError as e:
        print(f"\nBuy failed: {e}")
        return

    print(f"\nBuy completed: {result.formatted_out} {result.token_symbol}")
    print(f"Explorer: {result.explorer_url}")


def example_sell_half():
    """Example: Sell 50% of the CAKE balance"""
    print("\nExample: Selling 50% of CAKE")
    print("=" * 60)

    executor = _get_executor()
    if not executor:
        return

    try:
        balance = executor.get_token_balance(EXAMPLE_TOKEN)
        print(f"Current balance: {balance['formatted']} {balance['symbol']}")

        result = executor.execute_sell(EXAMPLE_TOKEN, '50%', slippage_bps=500)
    except TradeError as e:
        print(f"\nSell failed: {e}")
        return

    print(f"\nSell completed: ~{result.formatted_out} BNB")
    print(f"Explorer: {result.explorer_url}")


if __name__ == "__main__":
    print("Edge Router Trading Examples")
    print("=" * 60)
    print()
    print("WARNING: These examples trade real funds when run.")
    print("Start with the quote-only example.")
    print()

    example_get_quote_only()

    # Uncomment to run the trading examples
    # example_buy()
    # example_sell_half()
