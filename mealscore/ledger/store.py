"""
CSV-backed Ledger Store

This module owns persistence for members and dinner events. It validates
every payload at the boundary, so the aggregation core only ever sees
well-formed, referentially valid snapshots.

Files (inside the store folder):
- members.csv: id, name, active, created_at
- events.csv:  id, date, location, description, points, created_at,
               ip_address, attendees (member ids joined with ';')

The attendee set lives on the event row, so creating or deleting an event
together with its attendees is a single atomic file replace.

Members are never removed: "deleting" a member only clears its active
flag, which keeps every historical attendee id resolvable.

Usage:
    from mealscore.ledger.store import LedgerStore
    store = LedgerStore(folder)
    members, events = store.snapshot()
"""

import threading
import uuid
from pathlib import Path

import pandas as pd

from mealscore.config import (
    ATTENDEE_SEPARATOR,
    DATA_FOLDER,
    EVENT_COLUMNS,
    EVENTS_FILE,
    MEMBER_COLUMNS,
    MEMBERS_FILE,
)
from mealscore.utils import (
    atomic_write_csv,
    setup_logging,
    utc_timestamp,
    validate_description,
    validate_event_date,
    validate_location,
    validate_member_name,
    validate_points,
)

# --- Module Logger ---
logger = setup_logging(__name__)

# Serializes read-modify-write cycles across every store in the process
LOCK = threading.Lock()


class LedgerError(Exception):
    """Base exception for ledger storage errors"""
    pass


class ValidationError(LedgerError):
    """Malformed member or event payload"""
    pass


class DuplicateMemberError(LedgerError):
    """Raised when adding a member whose name is already taken"""
    pass


class MemberNotFoundError(LedgerError):
    """Raised for an unknown member id, or an attendee that cannot be selected"""
    pass


class EventNotFoundError(LedgerError):
    """Raised when deleting an event that does not exist"""
    pass


def _validated(validator, value):
    try:
        return validator(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _append_rows(df: pd.DataFrame, rows: list[dict], columns: list[str]) -> pd.DataFrame:
    new_rows = pd.DataFrame(rows, columns=columns)
    if df.empty:
        return new_rows
    return pd.concat([df, new_rows], ignore_index=True)


def _member_record(row) -> dict:
    return {
        'id': row['id'],
        'name': row['name'],
        'active': bool(row['active']),
        'created_at': row['created_at'],
    }


def _event_record(row) -> dict:
    return {
        'id': row['id'],
        'date': row['date'],
        'location': row['location'],
        'description': row['description'],
        'points': int(row['points']),
        'created_at': row['created_at'],
        'ip_address': row['ip_address'] or None,
        'attendees': list(row['attendees']),
    }


class LedgerStore:
    """Members and events persisted as CSV files in one folder."""

    def __init__(self, folder: Path | str | None = None):
        self.folder = Path(folder) if folder is not None else DATA_FOLDER
        self.members_path = self.folder / MEMBERS_FILE
        self.events_path = self.folder / EVENTS_FILE

    # --- Raw file access (callers hold LOCK) ---
    def _read_members(self) -> pd.DataFrame:
        if not self.members_path.exists():
            return pd.DataFrame({
                "id": pd.Series(dtype=str),
                "name": pd.Series(dtype=str),
                "active": pd.Series(dtype=bool),
                "created_at": pd.Series(dtype=str),
            })
        df = pd.read_csv(self.members_path, dtype=str, keep_default_na=False)
        df['active'] = df['active'].str.lower() == 'true'
        return df[MEMBER_COLUMNS]

    def _write_members(self, df: pd.DataFrame) -> None:
        atomic_write_csv(df[MEMBER_COLUMNS], self.members_path, index=False)

    def _read_events(self) -> pd.DataFrame:
        if not self.events_path.exists():
            df = pd.DataFrame(columns=EVENT_COLUMNS)
            df["points"] = df["points"].astype(int)
            return df
        df = pd.read_csv(self.events_path, dtype=str, keep_default_na=False)
        df['points'] = df['points'].astype(int)
        df['attendees'] = df['attendees'].apply(
            lambda joined: [m for m in joined.split(ATTENDEE_SEPARATOR) if m]
        )
        return df[EVENT_COLUMNS]

    def _write_events(self, df: pd.DataFrame) -> None:
        out = df[EVENT_COLUMNS].copy()
        out['attendees'] = out['attendees'].apply(ATTENDEE_SEPARATOR.join)
        atomic_write_csv(out, self.events_path, index=False)

    @staticmethod
    def _sorted_members(df: pd.DataFrame) -> pd.DataFrame:
        return df.sort_values('created_at', kind='mergesort').reset_index(drop=True)

    @staticmethod
    def _sorted_events(df: pd.DataFrame) -> pd.DataFrame:
        # Newest first; reversing before the stable sort keeps same-second
        # submissions newest first as well.
        return df.iloc[::-1].sort_values(
            'created_at', ascending=False, kind='mergesort'
        ).reset_index(drop=True)

    # --- Members ---
    def list_members(self) -> pd.DataFrame:
        """All members, active or not, oldest first."""
        with LOCK:
            return self._sorted_members(self._read_members())

    def create_member(self, name: str) -> dict:
        """
        Add a member.

        Raises:
            ValidationError: If the name is empty or too long
            DuplicateMemberError: If a member (active or not) already has this name
        """
        name = _validated(validate_member_name, name)

        with LOCK:
            members = self._read_members()
            if (members['name'] == name).any():
                raise DuplicateMemberError(f"Member already exists: {name}")

            member = {
                'id': uuid.uuid4().hex,
                'name': name,
                'active': True,
                'created_at': utc_timestamp(),
            }
            self._write_members(_append_rows(members, [member], MEMBER_COLUMNS))

        logger.info(f"Added member {name} ({member['id']})")
        return member

    def create_members_bulk(self, names: list[str]) -> pd.DataFrame:
        """
        Add every name that is not on the roster yet; existing names are skipped.

        Returns:
            The full roster after the insert
        """
        if not names:
            raise ValidationError("Member list must not be empty")
        cleaned = [_validated(validate_member_name, name) for name in names]

        with LOCK:
            members = self._read_members()
            existing = set(members['name'])
            created_at = utc_timestamp()
            new_rows = []
            for name in cleaned:
                if name in existing:
                    continue
                existing.add(name)
                new_rows.append({
                    'id': uuid.uuid4().hex,
                    'name': name,
                    'active': True,
                    'created_at': created_at,
                })

            if new_rows:
                members = _append_rows(members, new_rows, MEMBER_COLUMNS)
                self._write_members(members)

        logger.info(f"Bulk add: {len(new_rows)} new members, {len(cleaned) - len(new_rows)} skipped")
        return self._sorted_members(members)

    def seed_members(self, names) -> pd.DataFrame:
        """Populate an empty roster with the initial member names."""
        members = self.list_members()
        if not members.empty or not names:
            return members
        logger.info(f"Seeding empty roster with {len(names)} members")
        return self.create_members_bulk(list(names))

    def deactivate_member(self, member_id: str) -> dict:
        """
        Soft-delete a member: hidden from new dinners, kept for history.

        Raises:
            MemberNotFoundError: If no member has this id
        """
        with LOCK:
            members = self._read_members()
            mask = members['id'] == member_id
            if not mask.any():
                raise MemberNotFoundError(f"Unknown member id: {member_id}")

            members.loc[mask, 'active'] = False
            self._write_members(members)
            member = _member_record(members[mask].iloc[0])

        logger.info(f"Deactivated member {member['name']} ({member_id})")
        return member

    # --- Events ---
    def list_events(self) -> pd.DataFrame:
        """All events, newest submission first, with attendees as id lists."""
        with LOCK:
            return self._sorted_events(self._read_events())

    def create_event(
        self,
        date,
        location: str,
        attendees: list[str],
        points: int,
        description: str | None = "",
        ip_address: str | None = None,
    ) -> dict:
        """
        Record a dinner together with its attendee set (all or nothing).

        Args:
            date: Calendar date of the dinner (date or YYYY-MM-DD string)
            location: Where it took place
            attendees: Member ids; duplicates are collapsed, order kept
            points: Points credited to each attendee (0-20)
            description: Free text
            ip_address: Submitting client address, if known

        Returns:
            The stored event as a dict

        Raises:
            ValidationError: If any field is malformed or attendees is empty
            MemberNotFoundError: If an attendee is unknown or inactive
        """
        date = _validated(validate_event_date, date)
        location = _validated(validate_location, location)
        description = _validated(validate_description, description)
        points = _validated(validate_points, points)

        if isinstance(attendees, str) or not attendees:
            raise ValidationError("An event needs at least one attendee")
        attendee_ids = list(dict.fromkeys(str(a) for a in attendees))

        with LOCK:
            members = self._read_members()
            active_ids = set(members.loc[members['active'].astype(bool), 'id'])
            unavailable = [a for a in attendee_ids if a not in active_ids]
            if unavailable:
                raise MemberNotFoundError(
                    f"Attendees not found or inactive: {', '.join(unavailable)}"
                )

            event = {
                'id': uuid.uuid4().hex,
                'date': date,
                'location': location,
                'description': description,
                'points': points,
                'created_at': utc_timestamp(),
                'ip_address': ip_address or '',
                'attendees': attendee_ids,
            }
            events = self._read_events()
            self._write_events(_append_rows(events, [event], EVENT_COLUMNS))

        logger.info(
            f"Recorded dinner on {date} at {location}: "
            f"{len(attendee_ids)} attendees x {points} points"
        )
        return _event_record(event)

    def delete_event(self, event_id: str) -> None:
        """
        Remove an event and its attendee set.

        Raises:
            EventNotFoundError: If no event has this id
        """
        with LOCK:
            events = self._read_events()
            mask = events['id'] == event_id
            if not mask.any():
                raise EventNotFoundError(f"Unknown event id: {event_id}")
            self._write_events(events[~mask])

        logger.info(f"Deleted event {event_id}")

    # --- Snapshots ---
    def snapshot(self) -> tuple[pd.DataFrame, pd.DataFrame]:
        """Members and events read together, so no write lands between them."""
        with LOCK:
            members = self._sorted_members(self._read_members())
            events = self._sorted_events(self._read_events())
        return members, events

