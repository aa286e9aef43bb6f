#!/usr/bin/env python3
"""
Daily Cylinder Ledger - Web API

A Flask JSON API over the reconciliation engine: spreadsheet import and
export plus saving, loading and listing daily update batches.
"""
import logging
import os
from dataclasses import asdict
from datetime import datetime
from io import BytesIO
from typing import Any, Dict

from flask import Flask, current_app, jsonify, request, send_file

from config import APP_NAME, APP_VERSION, get_config
from ledger.engine import ReconciliationEngine
from ledger.models import DailyLedgerEntry, batch_totals
from parsers.xlsx_parser import ImportFormatError
from storage.document_store import DocumentStore, JSONFileDocumentStore, PersistenceError
from storage.repositories import DailyUpdate, DailyUpdateRepository, MemberRepository


# =============================================================================
# Application Configuration
# =============================================================================

config = get_config()

logging.basicConfig(
    level=config.get('log_level', 'INFO'),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = int(config.get('max_upload_mb', 16)) * 1024 * 1024
# Tests put an in-memory store here before the first request
app.config.setdefault('DOCUMENT_STORE', None)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def get_store() -> DocumentStore:
    store = current_app.config.get('DOCUMENT_STORE')
    if store is None:
        store = JSONFileDocumentStore(config.store_path)
        current_app.config['DOCUMENT_STORE'] = store
    return store


def _updates() -> DailyUpdateRepository:
    return DailyUpdateRepository(get_store(), default_status=config.default_status)


def _members() -> MemberRepository:
    return MemberRepository(get_store())


def _entries_from_payload(payload: Any) -> Dict[str, DailyLedgerEntry]:
    """Rebuild a batch posted as {member_id: entry dict}; totals are recomputed."""
    entries = payload.get('entries') if isinstance(payload, dict) else None
    if not isinstance(entries, dict):
        raise ValueError("Request body must contain an 'entries' object")
    return {
        str(member_id): DailyLedgerEntry.from_dict(record, member_id=str(member_id))
        for member_id, record in entries.items()
        if isinstance(record, dict)
    }


def _entries_json(entries: Dict[str, DailyLedgerEntry]) -> Dict[str, Any]:
    return {member_id: entry.to_dict() for member_id, entry in entries.items()}


def _update_json(update: DailyUpdate, include_entries: bool = False) -> Dict[str, Any]:
    entries = update.entries()
    summary = batch_totals(entries.values())
    data = {
        'id': update.id,
        'title': update.title,
        'author': update.author,
        'date': update.date,
        'status': update.status,
        'createdAt': update.created_at,
        'member_count': summary['member_count'],
        'grand_total': summary['grand_total'],
    }
    if include_entries:
        data['entries'] = _entries_json(entries)
        data['summary'] = summary
    return data


def _xlsx_response(entries: Dict[str, DailyLedgerEntry]):
    engine = ReconciliationEngine()
    engine.load_entries(entries)
    return send_file(
        BytesIO(engine.export_batch()),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=engine.export_filename(),
    )


# =============================================================================
# Routes
# =============================================================================

@app.route('/api/daily-updates/import', methods=['POST'])
def import_daily_updates():
    """Parse an uploaded workbook and match its rows to active members."""
    if 'file' not in request.files:
        return jsonify({'error': 'No file uploaded'}), 400

    file = request.files['file']
    if file.filename == '':
        return jsonify({'error': 'No file selected'}), 400

    file_ext = os.path.splitext(file.filename)[1].lower()
    if file_ext != '.xlsx':
        return jsonify({'error': 'Unsupported file format. Please upload an .xlsx file.'}), 400

    engine = ReconciliationEngine(roster=_members().list_active())
    imported = engine.import_batch(file.read())
    engine.load_entries(engine.reconcile_imported_with_roster(imported))
    result = engine.last_match

    logger.info(
        "Imported %s: %d rows, %d unmatched",
        file.filename, len(imported), result.unmatched_count,
    )

    return jsonify({
        'success': True,
        'entries': _entries_json(engine.entries),
        'imported_count': len(imported),
        'matched': result.matched,
        'unmatched': result.unmatched,
        'unmatched_count': result.unmatched_count,
        'summary': engine.get_summary(),
        'validation_issues': [asdict(issue) for issue in engine.last_import_issues],
    })


@app.route('/api/daily-updates/export', methods=['POST'])
def export_daily_updates():
    """Download a posted batch as a workbook."""
    try:
        entries = _entries_from_payload(request.get_json(silent=True))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    if not entries:
        return jsonify({'error': 'No data to export'}), 400

    return _xlsx_response(entries)


@app.route('/api/daily-updates', methods=['GET'])
def list_daily_updates():
    return jsonify([_update_json(u) for u in _updates().list_updates()])


@app.route('/api/daily-updates', methods=['POST'])
def create_daily_update():
    payload = request.get_json(silent=True) or {}
    try:
        entries = _entries_from_payload(payload)
        update_id = _updates().save_batch(
            entries,
            primary_member_id=payload.get('primaryMemberId'),
            status=payload.get('status'),
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'id': update_id}), 201


@app.route('/api/daily-updates/<update_id>', methods=['GET'])
def get_daily_update(update_id):
    update = _updates().get(update_id)
    if update is None:
        return jsonify({'error': 'Daily update not found'}), 404
    return jsonify(_update_json(update, include_entries=True))


@app.route('/api/daily-updates/<update_id>', methods=['PUT'])
def update_daily_update(update_id):
    repo = _updates()
    if repo.get(update_id) is None:
        return jsonify({'error': 'Daily update not found'}), 404

    payload = request.get_json(silent=True) or {}
    try:
        entries = _entries_from_payload(payload)
        repo.update_batch(
            update_id,
            entries,
            primary_member_id=payload.get('primaryMemberId'),
            status=payload.get('status'),
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'id': update_id})


@app.route('/api/daily-updates/<update_id>', methods=['DELETE'])
def delete_daily_update(update_id):
    repo = _updates()
    if repo.get(update_id) is None:
        return jsonify({'error': 'Daily update not found'}), 404
    repo.delete(update_id)
    return jsonify({'success': True})


@app.route('/api/daily-updates/<update_id>/export', methods=['GET'])
def export_saved_daily_update(update_id):
    update = _updates().get(update_id)
    if update is None:
        return jsonify({'error': 'Daily update not found'}), 404

    entries = update.entries()
    if not entries:
        return jsonify({'error': 'No data to export'}), 400
    return _xlsx_response(entries)


@app.route('/api/members')
def list_members():
    """Return members; ?active=true limits to the selectable roster."""
    repo = _members()
    active_only = request.args.get('active', 'false').lower() == 'true'
    members = repo.list_active() if active_only else repo.list_members()
    return jsonify([{'id': m.id, **m.to_dict()} for m in members])


@app.route('/health')
def health_check():
    return jsonify({
        'status': 'healthy',
        'app': APP_NAME,
        'version': APP_VERSION,
        'timestamp': datetime.now().isoformat()
    })


@app.errorhandler(ImportFormatError)
def import_format_error(e):
    logger.warning("Import failed: %s", e)
    return jsonify({
        'error': 'Failed to import Excel file. Please check the file format and try again.',
        'detail': str(e),
    }), 400


@app.errorhandler(PersistenceError)
def persistence_error(e):
    logger.error("Store error: %s", e)
    return jsonify({
        'error': 'Failed to save daily update. Please try again.',
        'detail': str(e),
    }), 503


@app.errorhandler(413)
def file_too_large(e):
    return jsonify({
        'error': f"File too large. Maximum size is {app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)} MB."
    }), 413


@app.errorhandler(500)
def internal_error(e):
    logger.error(f"Internal server error: {e}")
    return jsonify({
        'error': 'An internal error occurred. Please try again.'
    }), 500


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'

    logger.info(f"Starting {APP_NAME} v{APP_VERSION} on port {port}")

    app.run(host='0.0.0.0', port=port, debug=debug)
