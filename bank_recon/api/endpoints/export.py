"""
Review workbook export of the session's last import.
"""
import io
from datetime import datetime

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from bank_recon.api.state import get_session_state
from bank_recon.common.logging_config import get_logger
from bank_recon.exporters.excel_exporter import ImportExcelExporter

logger = get_logger(__name__)
router = APIRouter()


@router.get("/xlsx")
def export_xlsx(request: Request, company_name: str = "Company"):
    state = get_session_state(request)
    if state.last_result is None:
        raise HTTPException(status_code=404, detail="No import in this session.")

    excel_bytes = ImportExcelExporter(company_name=company_name).generate(state.last_result)
    timestamp = datetime.now().strftime('%Y-%m-%d_%H%M%S')
    filename = f"statement_import_{timestamp}.xlsx"
    logger.info("Review workbook exported.", file_name=state.last_result.file_name, size=len(excel_bytes))

    return StreamingResponse(
        io.BytesIO(excel_bytes),
        media_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )
