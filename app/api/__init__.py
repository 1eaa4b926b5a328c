"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

Property measurement:
- properties.py   : Address search/resolve, pins, map surface actions
- measurements.py : Measurement records, stats, PDF report

CRM Domain:
- crm.py          : Clients, jobs, invoices, employees, deals, notes, reports

Health endpoints (/api/health, /api/ready, /api/metrics, /api/ping) live in
health_checks.py at the project root.
"""
