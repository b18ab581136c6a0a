"""Roster and attendance reconciliation engine.

Ingests rosters and attendance sheets (spreadsheets, PDFs, Word documents,
photographed sheets, share links), resolves every row against the known
cadet / training staff population and upserts identities, login accounts,
attendance records and presence totals.
"""

__version__ = "0.1.0"
