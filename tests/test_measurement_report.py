"""
Tests for the measurement report PDF
"""
import pytest
from services.measurement_report import render_measurement_report, _dimensions

STATS = {'total_measurements': 3, 'total_flowerbed_area': 40.0, 'total_snowfall': 6.0, 'driveway_count': 0}


@pytest.mark.unit
class TestMeasurementReport:
    """Tests for report rendering"""

    def test_renders_pdf(self, square_path):
        records = [
            {'type': 'flowerbed', 'length': 10.0, 'width': 4.0, 'area': 40.0, 'depth': 3.0, 'volume': 10.0,
             'material': 'mulch', 'location': 'Front bed', 'created_at': '2026-10-19T09:00:00'},
            {'type': 'snowfall', 'snowfall': 6.0, 'location': 'Lot', 'created_at': '2026-10-19T10:00:00'},
            {'type': 'lawn', 'area': 10000.0, 'coordinates': square_path, 'created_at': '2026-10-19T11:00:00'},
        ]
        pdf = render_measurement_report(records, STATS)
        assert pdf.startswith(b'%PDF')

    def test_renders_empty_report(self):
        pdf = render_measurement_report([], dict(STATS, total_measurements=0), title='Nothing yet')
        assert pdf.startswith(b'%PDF')

    def test_dimension_text(self, square_path):
        assert _dimensions({'type': 'patio', 'length': 12, 'width': 10}) == '12.0 ft × 10.0 ft'
        assert _dimensions({'type': 'snowfall', 'snowfall': 2}) == '2.0 in'
        assert _dimensions({'type': 'lawn', 'coordinates': square_path}) == 'Outlined (4 points)'
        assert _dimensions({'type': 'lawn'}) == '-'
