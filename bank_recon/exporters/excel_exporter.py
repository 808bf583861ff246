"""
Review workbook for an import result.

One "Transactions" sheet with status colouring and the reconciliation
columns, and a "Summary" sheet with the counts and a status chart.
"""
from io import BytesIO
from datetime import datetime

import pandas as pd
from xlsxwriter.utility import xl_range

from bank_recon.common.models import ImportResult, MatchStatus


class ImportExcelExporter:
    """Excel export of an ImportResult for human review."""

    COLORS = {
        'matched': '#10b981',         # Green
        'unmatched': '#f59e0b',       # Orange
        'duplicate': '#ef4444',       # Red
        'header_bg': '#1e293b',
        'header_text': '#ffffff',
        'zebra_light': '#f8fafc',
        'zebra_dark': '#f1f5f9',
        'accent': '#6366f1',
        'positive': '#10b981',
        'negative': '#ef4444',
    }

    COLUMNS = [
        ('Line', 7),
        ('Date', 12),
        ('Direction', 10),
        ('Counterparty', 40),
        ('BIN', 15),
        ('Amount', 15),
        ('Currency', 9),
        ('Original amount', 15),
        ('Rate', 10),
        ('Document', 12),
        ('KNP', 7),
        ('Payment type', 17),
        ('Status', 11),
        ('Match', 8),
        ('Client', 14),
        ('Reconciliation', 14),
        ('Ledger amount', 15),
        ('Description', 60),
    ]

    def __init__(self, company_name: str = "Company"):
        self.company_name = company_name
        self.buffer = BytesIO()
        self.workbook = None
        self.formats = {}

    def _create_formats(self):
        self.formats['header'] = self.workbook.add_format({
            'bold': True,
            'font_color': self.COLORS['header_text'],
            'bg_color': self.COLORS['header_bg'],
            'border': 1,
            'align': 'center',
            'valign': 'vcenter',
        })
        self.formats['title'] = self.workbook.add_format({
            'bold': True,
            'font_size': 18,
            'font_color': self.COLORS['accent'],
        })
        self.formats['subtitle'] = self.workbook.add_format({
            'font_size': 11,
            'font_color': '#64748b',
            'italic': True,
        })
        self.formats['metric_label'] = self.workbook.add_format({
            'bold': True,
            'bg_color': self.COLORS['header_bg'],
            'font_color': self.COLORS['header_text'],
            'border': 1,
        })
        self.formats['metric_value'] = self.workbook.add_format({
            'border': 1,
            'bg_color': '#f8fafc',
            'num_format': '#,##0',
        })
        self.formats['metric_money'] = self.workbook.add_format({
            'border': 1,
            'bg_color': '#f8fafc',
            'num_format': '#,##0.00',
        })
        self.formats['total'] = self.workbook.add_format({
            'bold': True,
            'border': 2,
            'bg_color': '#cbd5e1',
            'num_format': '#,##0.00',
        })

        # Row formats per zebra stripe: plain, date, money in / out, status colours
        for stripe in ('zebra_light', 'zebra_dark'):
            base = {'border': 1, 'border_color': '#e2e8f0', 'bg_color': self.COLORS[stripe]}
            self.formats[f'cell_{stripe}'] = self.workbook.add_format(base)
            self.formats[f'date_{stripe}'] = self.workbook.add_format({**base, 'num_format': 'dd.mm.yyyy',
                                                                         'align': 'center'})
            self.formats[f'in_{stripe}'] = self.workbook.add_format({
                **base, 'num_format': '#,##0.00', 'bold': True, 'font_color': self.COLORS['positive']})
            self.formats[f'out_{stripe}'] = self.workbook.add_format({
                **base, 'num_format': '#,##0.00', 'bold': True, 'font_color': self.COLORS['negative']})
            self.formats[f'num_{stripe}'] = self.workbook.add_format({**base, 'num_format': '#,##0.00'})
            for status in MatchStatus:
                self.formats[f'{status.value}_{stripe}'] = self.workbook.add_format({
                    **base, 'bold': True, 'font_color': self.COLORS[status.value]})

    def _create_transactions_sheet(self, result: ImportResult):
        sheet = self.workbook.add_worksheet('Transactions')
        for col, (header, width) in enumerate(self.COLUMNS):
            sheet.set_column(col, col, width)
            sheet.write(0, col, header, self.formats['header'])
        sheet.freeze_panes(1, 0)

        for row, txn in enumerate(result.transactions, start=1):
            stripe = 'zebra_light' if row % 2 == 0 else 'zebra_dark'
            cell = self.formats[f'cell_{stripe}']
            number = self.formats[f'num_{stripe}']
            rec = txn.reconciliation
            ledger = rec.existing_transaction if rec else None

            sheet.write_number(row, 0, txn.line_number, cell)
            sheet.write_datetime(row, 1, datetime.combine(txn.date, datetime.min.time()),
                                 self.formats[f'date_{stripe}'])
            sheet.write(row, 2, 'IN' if txn.is_income else 'OUT', cell)
            sheet.write(row, 3, txn.client_name or txn.client_name_raw, cell)
            sheet.write_string(row, 4, txn.client_bin, cell)
            sheet.write_number(row, 5, float(txn.amount),
                               self.formats[f"{'in' if txn.is_income else 'out'}_{stripe}"])
            sheet.write(row, 6, txn.currency, cell)
            if txn.amount_original is not None:
                sheet.write_number(row, 7, float(txn.amount_original), number)
            else:
                sheet.write_blank(row, 7, None, cell)
            if txn.exchange_rate is not None:
                sheet.write_number(row, 8, float(txn.exchange_rate), number)
            else:
                sheet.write_blank(row, 8, None, cell)
            sheet.write_string(row, 9, txn.document_number, cell)
            sheet.write_string(row, 10, txn.knp_code, cell)
            sheet.write(row, 11, txn.payment_type.value, cell)
            sheet.write(row, 12, txn.match_status.value, self.formats[f'{txn.match_status.value}_{stripe}'])
            sheet.write(row, 13, txn.match_source.value, cell)
            sheet.write(row, 14, txn.matched_client_id or txn.duplicate_of or '', cell)
            sheet.write(row, 15, rec.type.value if rec else '', cell)
            if ledger is not None:
                sheet.write_number(row, 16, float(ledger.amount), number)
            else:
                sheet.write_blank(row, 16, None, cell)
            sheet.write(row, 17, txn.description, cell)

        if result.transactions:
            total_row = len(result.transactions) + 1
            sheet.write(total_row, 4, 'TOTAL:', self.formats['total'])
            sum_range = xl_range(1, 5, len(result.transactions), 5)
            sheet.write_formula(total_row, 5, f'=SUM({sum_range})', self.formats['total'])

    def _create_summary_sheet(self, result: ImportResult):
        sheet = self.workbook.add_worksheet('Summary')
        sheet.set_column('A:A', 30)
        sheet.set_column('B:B', 20)

        sheet.write(0, 0, f"Statement import - {self.company_name}", self.formats['title'])
        sheet.write(1, 0, f"File: {result.file_name} ({result.format.value})", self.formats['subtitle'])
        sheet.write(2, 0, f"Generated: {datetime.now().strftime('%d.%m.%Y %H:%M')}", self.formats['subtitle'])

        row = 4
        sheet.write(row, 0, "Metric", self.formats['header'])
        sheet.write(row, 1, "Value", self.formats['header'])
        row += 1

        summary = pd.Series({
            'Transactions': result.summary.total,
            'Matched': result.summary.matched,
            'Unmatched': result.summary.unmatched,
            'Duplicates': result.summary.duplicates,
            'Verified': result.summary.verified,
            'Discrepancies': result.summary.discrepancies,
            'New': result.summary.new,
            'Parse warnings': result.summary.parse_warnings,
            'Unconverted foreign': result.summary.unconverted_foreign,
        })
        for label, value in summary.items():
            sheet.write(row, 0, label, self.formats['metric_label'])
            sheet.write_number(row, 1, int(value), self.formats['metric_value'])
            row += 1
        for label, value in (('Income total', result.summary.income_total),
                             ('Expense total', result.summary.expense_total)):
            sheet.write(row, 0, label, self.formats['metric_label'])
            sheet.write_number(row, 1, float(value), self.formats['metric_money'])
            row += 1

        if result.summary.total > 0:
            chart_row = row + 2
            sheet.write(chart_row, 3, "Status", self.formats['header'])
            sheet.write(chart_row, 4, "Count", self.formats['header'])
            chart_data = [
                ("Matched", result.summary.matched),
                ("Unmatched", result.summary.unmatched),
                ("Duplicate", result.summary.duplicates),
            ]
            for i, (status, count) in enumerate(chart_data):
                sheet.write(chart_row + 1 + i, 3, status)
                sheet.write(chart_row + 1 + i, 4, count)

            chart = self.workbook.add_chart({'type': 'pie'})
            chart.add_series({
                'name': 'Match status',
                'categories': ['Summary', chart_row + 1, 3, chart_row + 3, 3],
                'values': ['Summary', chart_row + 1, 4, chart_row + 3, 4],
                'points': [
                    {'fill': {'color': self.COLORS['matched']}},
                    {'fill': {'color': self.COLORS['unmatched']}},
                    {'fill': {'color': self.COLORS['duplicate']}},
                ],
            })
            chart.set_title({'name': 'Transactions by match status'})
            chart.set_style(10)
            sheet.insert_chart('D2', chart, {'x_scale': 1.5, 'y_scale': 1.5})

    def generate(self, result: ImportResult) -> bytes:
        """
        Args:
            result: The import to export

        Returns:
            xlsx file content
        """
        self.buffer = BytesIO()
        self.formats = {}
        writer = pd.ExcelWriter(self.buffer, engine='xlsxwriter')
        self.workbook = writer.book
        self._create_formats()

        self._create_transactions_sheet(result)
        self._create_summary_sheet(result)

        writer.close()
        self.buffer.seek(0)
        return self.buffer.getvalue()
