import asyncio
import logging
import threading

import gspread
from gspread.utils import ValueInputOption

from lead_relay.core.credentials import load_service_account_credentials
from lead_relay.core.errors import ConfigurationError, PersistenceError
from lead_relay.core.settings import Settings
from lead_relay.core.utils import SHEET_HEADER, build_sheet_row, normalize_header
from lead_relay.models.lead import LeadRecord

logger = logging.getLogger(__name__)


class LeadSink:
    """Appends leads to a Google Sheets worksheet."""

    def __init__(
        self,
        spreadsheet_id: str | None,
        credentials_json: str | None,
        worksheet_name: str = "Leads",
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.worksheet_name = worksheet_name
        self._credentials_json = credentials_json
        self._client: gspread.Client | None = None
        self._worksheet: gspread.Worksheet | None = None
        self._init_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LeadSink":
        return cls(
            spreadsheet_id=settings.GOOGLE_SHEETS_SPREADSHEET_ID,
            credentials_json=settings.GOOGLE_SERVICE_ACCOUNT_JSON,
            worksheet_name=settings.GOOGLE_WORKSHEET_NAME,
        )

    def _check_config(self) -> None:
        """
        Resolve configuration before any network call.

        Raises:
            ConfigurationError: spreadsheet ID or service account is missing or invalid
        """
        if not self.spreadsheet_id:
            raise ConfigurationError("GOOGLE_SHEETS_SPREADSHEET_ID environment variable not set.")
        load_service_account_credentials(self._credentials_json)

    def _get_worksheet(self) -> gspread.Worksheet:
        """
        Worksheet object, opened once and reused.

        Returns:
            gspread.Worksheet: The leads worksheet
        """
        if self._worksheet is None:
            with self._init_lock:
                if self._worksheet is None:
                    if self._client is None:
                        credentials = load_service_account_credentials(self._credentials_json)
                        self._client = gspread.authorize(credentials)

                    spreadsheet = self._client.open_by_key(self.spreadsheet_id)
                    self._worksheet = spreadsheet.worksheet(self.worksheet_name)
                    logger.info("Opened worksheet '%s'", self.worksheet_name)

        return self._worksheet

    def _forget_worksheet(self) -> None:
        # A renamed or deleted sheet must be looked up again on the next call.
        with self._init_lock:
            self._worksheet = None

    async def append_lead(self, record: LeadRecord) -> None:
        """
        Append one row for the lead to the worksheet.

        Args:
            record: Validated lead from the client

        Raises:
            ConfigurationError: sheet access is not configured
            PersistenceError: the Sheets API call failed
        """
        self._check_config()
        row = build_sheet_row(record.snapshot())

        def append_row_sync() -> None:
            self._get_worksheet().append_row(
                row,
                value_input_option=ValueInputOption.user_entered,
                table_range="A1",
            )

        try:
            await asyncio.to_thread(append_row_sync)
        except Exception as e:
            self._forget_worksheet()
            logger.error("Google Sheets API error while appending lead: %s", e, exc_info=True)
            raise PersistenceError("Failed to append row to Google Sheet.") from e

        logger.info("Lead appended to '%s' for email=%s", self.worksheet_name, record.email)

    async def verify_header(self) -> None:
        """
        Check that row 1 of the worksheet matches SHEET_HEADER.

        Rows are appended positionally, so a reordered header would silently
        shift values into the wrong columns.

        Raises:
            ConfigurationError: header differs or the sheet cannot be read
        """
        self._check_config()

        def read_header_sync() -> list[str]:
            return self._get_worksheet().row_values(1)

        try:
            header = await asyncio.to_thread(read_header_sync)
        except Exception as e:
            self._forget_worksheet()
            logger.error("Cannot read header of worksheet '%s': %s", self.worksheet_name, e, exc_info=True)
            raise ConfigurationError(f"Cannot read header of worksheet '{self.worksheet_name}'") from e

        actual = [normalize_header(cell) for cell in header[: len(SHEET_HEADER)]]
        if actual != SHEET_HEADER:
            raise ConfigurationError(
                f"Worksheet '{self.worksheet_name}' header {header} does not match expected columns {SHEET_HEADER}"
            )
        logger.info("Worksheet '%s' header verified", self.worksheet_name)
