"""
Steam account lookup.

Names the accounts that own userdata folders (from config/loginusers.vdf) and
picks the one shortcuts.vdf should be read from. When loginusers.vdf has no
usable MostRecent entry, the most recently touched userdata folder wins.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import vdf

logger = logging.getLogger(__name__)

STEAM_USER_FALLBACK_FORMAT = "Steam User {}"
ACCOUNT_ID_MASK = 0xFFFFFFFF


@dataclass
class SteamUserAccount:
    """A Steam account; user_id is the userdata folder name (32-bit account id)."""
    user_id: str
    account_name: str = ""
    persona_name: str = ""
    steam_id64: str = ""
    most_recent: bool = False

    @property
    def display_name(self) -> str:
        return self.persona_name or self.account_name or STEAM_USER_FALLBACK_FORMAT.format(self.user_id)


def list_steam_user_ids(steam_root: str) -> List[str]:
    """Numeric userdata folder names, excluding the user 0 meta-directory."""
    userdata = os.path.join(steam_root, "userdata")
    if not os.path.isdir(userdata):
        return []
    return sorted(
        name for name in os.listdir(userdata)
        if name.isdigit() and name != '0' and os.path.isdir(os.path.join(userdata, name))
    )


def _account_from_entry(steam64: str, entry: Any) -> Optional[SteamUserAccount]:
    if not isinstance(entry, dict):
        return None
    try:
        account_id = str(int(steam64) & ACCOUNT_ID_MASK)
    except ValueError:
        logger.warning(f"[SteamUser] Skipping entry with non-numeric id {steam64!r}")
        return None
    return SteamUserAccount(
        user_id=account_id,
        account_name=entry.get('AccountName', ''),
        persona_name=entry.get('PersonaName', ''),
        steam_id64=steam64,
        most_recent=entry.get('MostRecent') == '1',
    )


def read_steam_users(steam_root: Optional[str]) -> Dict[str, SteamUserAccount]:
    """
    Accounts listed in loginusers.vdf, keyed by userdata folder name.

    loginusers.vdf is keyed by Steam64 id; the folder name is its low 32 bits.
    A missing or unreadable file yields an empty dict.
    """
    if not steam_root:
        return {}

    path = os.path.join(steam_root, "config", "loginusers.vdf")
    if not os.path.isfile(path):
        logger.debug(f"[SteamUser] No loginusers.vdf under {steam_root}")
        return {}

    try:
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            parsed = vdf.load(f)
    except (OSError, SyntaxError, ValueError) as e:
        logger.warning(f"[SteamUser] Could not parse {path}: {e}")
        return {}

    accounts: Dict[str, SteamUserAccount] = {}
    for steam64, entry in parsed.get('users', {}).items():
        account = _account_from_entry(steam64, entry)
        if account is not None:
            accounts[account.user_id] = account

    logger.info(f"[SteamUser] {len(accounts)} account(s) in loginusers.vdf")
    return accounts


def get_valid_users(steam_root: str) -> List[SteamUserAccount]:
    """Accounts that have a userdata folder; unnamed ones get a fallback name."""
    known = read_steam_users(steam_root)
    return [known.get(uid) or SteamUserAccount(user_id=uid) for uid in list_steam_user_ids(steam_root)]


def get_logged_in_steam_user(steam_root: str) -> Optional[str]:
    """userdata folder name of the account Steam last signed in with, or None."""
    for account in read_steam_users(steam_root).values():
        if not account.most_recent:
            continue
        if os.path.isdir(os.path.join(steam_root, "userdata", account.user_id)):
            logger.info(f"[SteamUser] MostRecent account: {account.user_id}")
            return account.user_id
        logger.warning(f"[SteamUser] MostRecent account {account.user_id} has no userdata folder")

    newest = _newest_userdata_folder(steam_root)
    if newest:
        logger.info(f"[SteamUser] Using most recently modified userdata folder: {newest}")
        return newest

    logger.error(f"[SteamUser] No Steam user found under {steam_root}")
    return None


def _newest_userdata_folder(steam_root: str) -> Optional[str]:
    userdata = os.path.join(steam_root, "userdata")
    user_ids = list_steam_user_ids(steam_root)
    if not user_ids:
        return None
    return max(user_ids, key=lambda uid: os.path.getmtime(os.path.join(userdata, uid)))
