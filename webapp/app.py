"""
Flask Application Factory

Creates and configures the Flask application instance: the availability
page, the JSON status and health endpoints, the subscription form and the
Telegram webhook.
"""

import logging
from functools import partial

from flask import Flask, render_template, request, redirect, jsonify, make_response

from models.refuge import REFUGES, FULL
from monitoring.dedup import WILDCARD
from monitoring.errors import ValidationError, StoreError
from utils.date_converter import format_timestamp
from utils.i18n import SUPPORTED_LANGUAGES, detect_language, normalize_language, translate
from webapp.routes.telegram import handle_update
from webapp.services.subscription_service import validate_subscription, save_subscription

logger = logging.getLogger(__name__)

WEBHOOK_SECRET_HEADER = 'X-Telegram-Bot-Api-Secret-Token'
LANG_COOKIE_MAX_AGE = 365 * 24 * 3600


def create_app(state, store=None, notifier=None, settings=None):
    """
    Create and configure the Flask application.

    Args:
        state (StatusState): Latest snapshot, written by the poller
        store (SubscriberStore, optional): Subscriber store for the form and webhook
        notifier (TelegramNotifier, optional): Sends confirmations and replies
        settings (Settings, optional): Loaded configuration

    Returns:
        Flask: Configured application
    """
    app = Flask(__name__)

    measurement_id = getattr(settings, 'measurement_id', '') or ''
    timezone = getattr(settings, 'timezone', 'Europe/Paris')
    webhook_secret = getattr(settings, 'webhook_secret', None)
    admin_chat_id = getattr(settings, 'admin_chat_id', None)

    @app.route('/')
    def home():
        """Availability page with the subscription form."""
        lang = detect_language(request)
        snapshot, last_check = state.read()

        refuges = [
            (name, sorted(dates.items()))
            for name, dates in sorted(snapshot.items(), key=lambda item: _refuge_position(item[0]))
        ]
        response = make_response(render_template(
            'home.html',
            T=partial(translate, lang),
            lang=lang,
            languages=SUPPORTED_LANGUAGES,
            refuges=refuges,
            refuge_options=[refuge.name for refuge in REFUGES],
            wildcard=WILDCARD,
            full=FULL,
            last_check=format_timestamp(last_check, timezone),
            measurement_id=measurement_id,
        ))

        requested = normalize_language(request.args.get('lang'))
        if requested:
            response.set_cookie('lang', requested, max_age=LANG_COOKIE_MAX_AGE)
        return response

    @app.route('/status')
    def status():
        """Health summary of the last check."""
        snapshot, last_check = state.read()
        return jsonify({
            'status': 'ok',
            'refuges': len(snapshot),
            'last_check': last_check.isoformat() if last_check else None,
        })

    @app.route('/health')
    def health():
        return 'OK', 200, {'Content-Type': 'text/plain; charset=utf-8'}

    @app.route('/subscribe', methods=['GET', 'POST'])
    def subscribe():
        """Save a subscriber and one query from the web form."""
        if request.method != 'POST':
            return redirect('/#subscribe', code=303)

        try:
            subscriber, query = validate_subscription(request.form)
        except ValidationError as e:
            logger.info(f"Rejected subscription: {e}")
            return str(e), 400

        if store is None:
            logger.error("Subscription received but no subscriber store is configured")
            return 'Subscriptions are not available', 500

        try:
            save_subscription(store, subscriber, query, notifier)
        except StoreError as e:
            logger.error(f"Error saving subscription for {subscriber.chat_id}: {e}")
            return 'Error saving subscription', 500

        return redirect('/#subscribe', code=303)

    @app.route('/telegram/webhook', methods=['POST'])
    def telegram_webhook():
        """Inbound Telegram updates."""
        if webhook_secret and request.headers.get(WEBHOOK_SECRET_HEADER) != webhook_secret:
            logger.warning("Rejected webhook call with a bad secret token")
            return 'Forbidden', 403

        update = request.get_json(force=True, silent=True)
        if not isinstance(update, dict):
            return 'Malformed update', 400

        if notifier is None:
            logger.warning("Webhook update received but no notifier is configured")
            return '', 200

        handle_update(update, store, notifier, admin_chat_id)
        return '', 200

    return app


def _refuge_position(name):
    for position, refuge in enumerate(REFUGES):
        if refuge.name == name:
            return position, name
    return len(REFUGES), name
