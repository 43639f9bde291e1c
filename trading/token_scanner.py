"""
Token Scanner
Resolves a token address to the supported network holding its deepest
liquidity, using DexScreener
"""

import logging
from typing import Optional, Dict, Any, List

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

DEXSCREENER_BASE_URL = "https://api.dexscreener.com/latest/dex/tokens"
REQUEST_TIMEOUT = 10

# DexScreener chainId -> network key
DEXSCREENER_CHAINS = {
    'ethereum': 'ETH',
    'bsc': 'BSC',
}


def create_session(retries: int = 3) -> requests.Session:
    """Requests session retrying idempotent calls on transient HTTP failures"""
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=('GET',)
    )
    session.mount('https://', HTTPAdapter(max_retries=retry))
    session.headers.update({'Accept': 'application/json'})
    return session


def _liquidity_usd(pair: Dict[str, Any]) -> float:
    try:
        return float((pair.get('liquidity') or {}).get('usd') or 0)
    except (TypeError, ValueError):
        return 0.0


def _as_float(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class TokenScanner:
    """Token detection across the supported networks"""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or create_session()

    def fetch_pairs(self, token_address: str) -> List[Dict[str, Any]]:
        """
        All DexScreener pairs for a token

        Args:
            token_address: Token contract address

        Returns:
            List of pair dictionaries (empty when none or on error)
        """
        url = f"{DEXSCREENER_BASE_URL}/{token_address}"
        logger.info(f"Fetching token data from: {url}")

        try:
            response = self.session.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"DexScreener request failed for {token_address}: {e}")
            return []

        pairs = (data or {}).get('pairs') or []
        if not isinstance(pairs, list):
            logger.error("Invalid response format from DexScreener")
            return []
        return pairs

    def scan_token(self, token_address: str) -> Optional[Dict[str, Any]]:
        """
        Pick the supported network with the most liquid pair for a token

        Equal liquidity on both networks resolves to BSC.

        Args:
            token_address: Token contract address

        Returns:
            {'network': 'ETH'|'BSC', 'pairs': [...], 'token': {...}} or None
        """
        pairs = self.fetch_pairs(token_address)
        if not pairs:
            logger.info(f"No pairs found on any chain for {token_address}")
            return None

        by_network: Dict[str, List[Dict[str, Any]]] = {key: [] for key in DEXSCREENER_CHAINS.values()}
        for pair in pairs:
            network = DEXSCREENER_CHAINS.get((pair.get('chainId') or '').lower())
            if network:
                by_network[network].append(pair)

        for network_pairs in by_network.values():
            network_pairs.sort(key=_liquidity_usd, reverse=True)

        eth_liquidity = _liquidity_usd(by_network['ETH'][0]) if by_network['ETH'] else 0.0
        bsc_liquidity = _liquidity_usd(by_network['BSC'][0]) if by_network['BSC'] else 0.0

        if eth_liquidity > bsc_liquidity:
            network = 'ETH'
        elif bsc_liquidity > 0:
            network = 'BSC'
        else:
            logger.info(f"No significant liquidity found for {token_address}")
            return None

        selected = by_network[network]
        logger.info(f"Selected {network} with {len(selected)} pairs")

        return {
            'network': network,
            'pairs': selected,
            'token': self.extract_token_data(selected[0]),
        }

    def extract_token_data(self, pair: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten the fields of the main pair the trading flow needs"""
        base_token = pair.get('baseToken') or {}
        liquidity = pair.get('liquidity') or {}

        return {
            'symbol': base_token.get('symbol', 'UNKNOWN'),
            'name': base_token.get('name', 'UNKNOWN'),
            'address': base_token.get('address', ''),
            'pair_address': pair.get('pairAddress', ''),
            'dex': pair.get('dexId', ''),
            'price_usd': _as_float(pair.get('priceUsd')),
            'price_native': _as_float(pair.get('priceNative')),
            'market_cap': _as_float(pair.get('marketCap') or pair.get('fdv')),
            'liquidity_usd': _as_float(liquidity.get('usd')),
            'volume_24h': _as_float((pair.get('volume') or {}).get('h24')),
        }
