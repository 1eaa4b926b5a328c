"""
Measurement report PDF rendering with reportlab.
"""
import io
import logging
from datetime import datetime
from typing import Dict, List, Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from services.measurement_engine import (
    MeasurementType, format_area, format_length, format_snowfall, format_volume
)

logger = logging.getLogger(__name__)


def _dimensions(record: Dict[str, Any]) -> str:
    if record.get('type') == MeasurementType.SNOWFALL:
        return format_snowfall(record.get('snowfall') or 0)
    if record.get('length') is not None and record.get('width') is not None:
        return f"{format_length(record['length'])} × {format_length(record['width'])}"
    if isinstance(record.get('coordinates'), list):
        return f"Outlined ({len(record['coordinates'])} points)"
    return '-'


def render_measurement_report(measurements: List[Dict[str, Any]], stats: Dict[str, Any],
                              title: str = "Property Measurements") -> bytes:
    """Build a PDF listing measurements with a summary of their stats"""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter, title=title)
    story = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#2196F3'),
        spaceAfter=20,
        alignment=1
    )
    heading_style = ParagraphStyle(
        'ReportHeading',
        parent=styles['Heading2'],
        fontSize=14,
        textColor=colors.HexColor('#1976D2'),
        spaceAfter=12
    )

    story.append(Paragraph(title, title_style))
    story.append(Paragraph(datetime.now().strftime('%B %d, %Y'), styles['Normal']))
    story.append(Spacer(1, 0.3*inch))

    # Summary
    story.append(Paragraph("Summary", heading_style))
    summary_data = [
        ['Total Measurements:', str(stats.get('total_measurements', 0))],
        ['Flowerbed Area:', format_area(stats.get('total_flowerbed_area', 0))],
        ['Total Snowfall:', format_snowfall(stats.get('total_snowfall', 0))],
        ['Driveways:', str(stats.get('driveway_count', 0))],
    ]
    summary_table = Table(summary_data, colWidths=[2*inch, 4*inch])
    summary_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#666666')),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
    ]))
    story.append(summary_table)
    story.append(Spacer(1, 0.3*inch))

    # Measurements
    story.append(Paragraph("Measurements", heading_style))
    if not measurements:
        story.append(Paragraph("No measurements recorded.", styles['Normal']))
    else:
        rows = [['Type', 'Location', 'Dimensions', 'Area', 'Volume', 'Material']]
        for record in measurements:
            rows.append([
                (record.get('type') or '').capitalize(),
                Paragraph(record.get('location') or record.get('address') or '-', styles['Normal']),
                _dimensions(record),
                format_area(record['area']) if record.get('area') is not None else '-',
                format_volume(record['volume']) if record.get('volume') is not None else '-',
                (record.get('material') or '-').capitalize(),
            ])
        table = Table(rows, colWidths=[0.9*inch, 1.9*inch, 1.3*inch, 1*inch, 1.4*inch, 0.8*inch], repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2196F3')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
        ]))
        story.append(table)

    doc.build(story)
    logger.info(f"Rendered measurement report with {len(measurements)} rows")
    return buffer.getvalue()
