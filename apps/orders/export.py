"""
Order export to a spreadsheet

Every accepted order is mirrored as one row in a Google Sheet that the shop
staff work from. The export is best effort: the order builder swallows and
logs any failure here, so nothing in this module may be relied on for
order correctness.
"""
import logging
from typing import List, Optional
from zoneinfo import ZoneInfo

import gspread
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from apps.core.utils import format_money

logger = logging.getLogger(__name__)

HEADER_ROW = [
    'Order ID',
    'Date/Time',
    'Customer Name',
    'Customer Email',
    'Items',
    'Cart Subtotal',
    'Payable Now',
    'Preorder Balance',
    'Discount',
    'Delivery Charge',
    'Total Paid',
    'Payment Method',
    'Payment Status',
    'Payment Info',
    'Shipping Type',
    'Shipping Details',
    'Status',
    'Tracking Number',
    'Notes',
]
HEADER_RANGE = 'A1:S1'

SHIPPING_TYPE_LABELS = {
    'local': 'Campus',
    'national': 'Nationwide',
}

SHIPPING_SUMMARY_FIELDS = (
    'name', 'phone', 'email', 'studentId', 'department', 'hallName',
    'address', 'district', 'city', 'postalCode',
)

SHEETS_SCOPES = ['https://www.googleapis.com/auth/spreadsheets']


def format_item(item) -> str:
    text = f"{item.name} (Qty: {item.quantity}"
    if item.size:
        text += f", Size: {item.size}"
    if item.is_preorder:
        text += " [PREORDER]"
    if item.custom_name:
        text += f", Custom: {item.custom_name} #{item.custom_number or ''}"
    return text + ")"


def format_payment_info(payment_info: Optional[dict]) -> str:
    if not payment_info:
        return 'N/A'
    provider = payment_info.get('provider') or 'N/A'
    number = payment_info.get('paymentNumber') or 'N/A'
    trx_id = payment_info.get('trxId') or 'N/A'
    return f"{provider} - {number} (TrxID: {trx_id})"


def format_shipping_details(details: Optional[dict]) -> str:
    if not details:
        return 'N/A'
    parts = [str(details[key]) for key in SHIPPING_SUMMARY_FIELDS if details.get(key)]
    return ', '.join(parts) or 'N/A'


def format_order_row(order, timezone_name: str = None) -> List[str]:
    """One spreadsheet row, in HEADER_ROW column order."""
    tz = ZoneInfo(timezone_name or getattr(settings, 'EXPORT_TIMEZONE', 'UTC'))
    created_at = order.created_at or timezone.now()
    placed_at = timezone.localtime(created_at, tz).strftime('%m/%d/%Y, %I:%M:%S %p')

    return [
        order.short_order_id or str(order.id),
        placed_at,
        order.user_name or 'N/A',
        order.user_email,
        '; '.join(format_item(item) for item in order.items.all()),
        format_money(order.subtotal),
        format_money(order.payable_subtotal),
        format_money(order.remaining_preorder_amount),
        format_money(order.discount),
        format_money(order.delivery_charge),
        format_money(order.total),
        order.payment_method,
        order.payment_status,
        format_payment_info(order.payment_info),
        SHIPPING_TYPE_LABELS.get(order.shipping_type, order.shipping_type),
        format_shipping_details(order.shipping_details),
        order.status,
        order.tracking_number or '',
        order.notes or '',
    ]


class OrderExportSink:
    """Destination for accepted orders."""
    is_configured = True

    def export(self, order) -> None:
        raise NotImplementedError


class NullExportSink(OrderExportSink):
    """Used when no spreadsheet is configured."""

    def export(self, order) -> None:
        logger.debug(f"Order export disabled, skipping order {order.short_order_id}")


class GoogleSheetsExportSink(OrderExportSink):
    """
    Appends orders to the `Orders` worksheet of a Google spreadsheet using a
    service account. Creates the worksheet and its header row if missing.
    """

    def __init__(
        self,
        spreadsheet_id: str = '',
        service_account_email: str = '',
        private_key: str = '',
        sheet_name: str = 'Orders',
        timezone_name: str = None,
        timeout: Optional[float] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.service_account_email = service_account_email
        self.private_key = (private_key or '').replace('\\n', '\n')
        self.sheet_name = sheet_name
        self.timezone_name = timezone_name
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.spreadsheet_id and self.service_account_email and self.private_key)

    def _client(self) -> gspread.Client:
        client = gspread.service_account_from_dict(
            {
                'type': 'service_account',
                'client_email': self.service_account_email,
                'private_key': self.private_key,
                'token_uri': 'https://oauth2.googleapis.com/token',
            },
            scopes=SHEETS_SCOPES,
        )
        if self.timeout:
            client.set_timeout(self.timeout)
        return client

    def _worksheet(self) -> gspread.Worksheet:
        spreadsheet = self._client().open_by_key(self.spreadsheet_id)
        try:
            worksheet = spreadsheet.worksheet(self.sheet_name)
        except gspread.WorksheetNotFound:
            logger.info(f"Creating worksheet '{self.sheet_name}'")
            worksheet = spreadsheet.add_worksheet(
                title=self.sheet_name, rows=1000, cols=len(HEADER_ROW)
            )

        first_row = worksheet.row_values(1)
        if not first_row or first_row[0] != HEADER_ROW[0]:
            worksheet.update(range_name=HEADER_RANGE, values=[HEADER_ROW])
            worksheet.format(HEADER_RANGE, {
                'backgroundColor': {'red': 0.2, 'green': 0.4, 'blue': 0.8},
                'textFormat': {
                    'foregroundColor': {'red': 1, 'green': 1, 'blue': 1},
                    'bold': True,
                },
            })
        return worksheet

    def export(self, order) -> None:
        row = format_order_row(order, self.timezone_name)
        self._worksheet().append_row(row, value_input_option='USER_ENTERED')
        logger.info(f"Exported order {order.short_order_id} to spreadsheet")


def get_export_sink() -> OrderExportSink:
    """
    Build the sink named by settings.ORDER_EXPORT. A backend without
    credentials degrades to NullExportSink.
    """
    config = getattr(settings, 'ORDER_EXPORT', {})
    backend = config.get('BACKEND', 'apps.orders.export.NullExportSink')
    sink = import_string(backend)(**config.get('OPTIONS', {}))
    if not sink.is_configured:
        return NullExportSink()
    return sink
