"""
Translations

UI and notification strings for the supported languages.
Unknown keys fall back to English, then to the key itself.
"""

DEFAULT_LANGUAGE = 'en'

TRANSLATIONS = {
    'en': {
        'title': 'Refuge Availability',
        'last_updated': 'Last updated',
        'places': 'places',
        'full': 'Full',
        'any': 'Any',
        'chat_id': 'Telegram Chat ID',
        'language': 'Language',
        'refuge': 'Refuge',
        'date_from': 'From date',
        'date_to': 'To date',
        'submit': 'Submit',
        'hero_title': 'Free spots in Mont Blanc refuges, in real time',
        'hero_subtitle': "No more daily checks. We'll notify you when spots appear.",
        'cta_check': 'Check availability',
        'cta_subscribe': 'Subscribe to alerts',
        'demo_title': 'Live availability',
        'no_data': 'No data yet, the first check is still running.',
        'chat_id_how': 'Open the bot and send /id',
        'new_availability': 'New refuge availability',
        'greeting': "✅ Subscribed. We'll notify you about new dates. Send /stop to unsubscribe.",
        'subscription_saved': "✅ Subscription saved. We'll notify you when matching dates appear.",
        'unsubscribed': '👋 Unsubscribed. Send /start to subscribe again.',
        'your_chat_id': 'Your chat ID is',
    },
    'de': {
        'title': 'Hüttenverfügbarkeit',
        'last_updated': 'Zuletzt aktualisiert',
        'places': 'Plätze',
        'full': 'Ausgebucht',
        'any': 'Alle',
        'chat_id': 'Telegram Chat-ID',
        'language': 'Sprache',
        'refuge': 'Hütte',
        'date_from': 'Von Datum',
        'date_to': 'Bis Datum',
        'submit': 'Senden',
        'hero_title': 'Freie Plätze in Mont-Blanc-Hütten, in Echtzeit',
        'hero_subtitle': 'Keine täglichen Checks mehr. Wir benachrichtigen Sie, wenn Plätze frei werden.',
        'cta_check': 'Verfügbarkeit prüfen',
        'cta_subscribe': 'Benachrichtigungen abonnieren',
        'demo_title': 'Live-Verfügbarkeit',
        'no_data': 'Noch keine Daten, die erste Prüfung läuft noch.',
        'chat_id_how': 'Öffne den Bot und sende /id',
        'new_availability': 'Neue Hüttenverfügbarkeit',
        'greeting': '✅ Abonniert. Wir melden neue Termine. Sende /stop zum Abbestellen.',
        'subscription_saved': '✅ Abonnement gespeichert. Wir melden passende Termine.',
        'unsubscribed': '👋 Abbestellt. Sende /start, um wieder zu abonnieren.',
        'your_chat_id': 'Deine Chat-ID ist',
    },
    'fr': {
        'title': 'Disponibilité des refuges',
        'last_updated': 'Dernière mise à jour',
        'places': 'places',
        'full': 'Complet',
        'any': 'Tous',
        'chat_id': 'ID de chat Telegram',
        'language': 'Langue',
        'refuge': 'Refuge',
        'date_from': 'Date de début',
        'date_to': 'Date de fin',
        'submit': 'Envoyer',
        'hero_title': 'Places libres dans les refuges du Mont-Blanc, en temps réel',
        'hero_subtitle': "Fini les vérifications quotidiennes. Nous vous avertissons dès qu'une place se libère.",
        'cta_check': 'Vérifier la disponibilité',
        'cta_subscribe': "S'abonner aux alertes",
        'demo_title': 'Disponibilité en direct',
        'no_data': 'Pas encore de données, la première vérification est en cours.',
        'chat_id_how': 'Ouvrez le bot et envoyez /id',
        'new_availability': 'Nouvelles disponibilités',
        'greeting': '✅ Abonné. Nous vous signalerons les nouvelles dates. Envoyez /stop pour vous désabonner.',
        'subscription_saved': '✅ Abonnement enregistré. Nous vous avertirons des dates correspondantes.',
        'unsubscribed': '👋 Désabonné. Envoyez /start pour vous réabonner.',
        'your_chat_id': 'Votre ID de chat est',
    },
    'es': {
        'title': 'Disponibilidad de refugios',
        'last_updated': 'Última actualización',
        'places': 'plazas',
        'full': 'Completo',
        'any': 'Todos',
        'chat_id': 'ID de chat de Telegram',
        'language': 'Idioma',
        'refuge': 'Refugio',
        'date_from': 'Fecha de inicio',
        'date_to': 'Fecha de fin',
        'submit': 'Enviar',
        'hero_title': 'Plazas libres en refugios del Mont Blanc, en tiempo real',
        'hero_subtitle': 'No más comprobaciones diarias. Te avisamos cuando haya plazas.',
        'cta_check': 'Comprobar disponibilidad',
        'cta_subscribe': 'Suscribirse a alertas',
        'demo_title': 'Disponibilidad en vivo',
        'no_data': 'Aún no hay datos, la primera comprobación sigue en curso.',
        'chat_id_how': 'Abre el bot y envía /id',
        'new_availability': 'Nueva disponibilidad en refugios',
        'greeting': '✅ Suscrito. Te avisaremos de nuevas fechas. Envía /stop para darte de baja.',
        'subscription_saved': '✅ Suscripción guardada. Te avisaremos de las fechas que coincidan.',
        'unsubscribed': '👋 Baja confirmada. Envía /start para volver a suscribirte.',
        'your_chat_id': 'Tu ID de chat es',
    },
    'it': {
        'title': 'Disponibilità dei rifugi',
        'last_updated': 'Ultimo aggiornamento',
        'places': 'posti',
        'full': 'Completo',
        'any': 'Tutti',
        'chat_id': 'ID chat Telegram',
        'language': 'Lingua',
        'refuge': 'Rifugio',
        'date_from': 'Data inizio',
        'date_to': 'Data fine',
        'submit': 'Invia',
        'hero_title': 'Posti liberi nei rifugi del Monte Bianco, in tempo reale',
        'hero_subtitle': 'Basta controlli quotidiani. Ti avvisiamo quando ci sono posti.',
        'cta_check': 'Controlla disponibilità',
        'cta_subscribe': 'Iscriviti agli avvisi',
        'demo_title': 'Disponibilità live',
        'no_data': 'Nessun dato ancora, il primo controllo è in corso.',
        'chat_id_how': 'Apri il bot e invia /id',
        'new_availability': 'Nuova disponibilità nei rifugi',
        'greeting': '✅ Iscritto. Ti avviseremo delle nuove date. Invia /stop per annullare.',
        'subscription_saved': '✅ Iscrizione salvata. Ti avviseremo quando ci sono date corrispondenti.',
        'unsubscribed': '👋 Iscrizione annullata. Invia /start per iscriverti di nuovo.',
        'your_chat_id': 'Il tuo ID chat è',
    },
}

SUPPORTED_LANGUAGES = tuple(TRANSLATIONS)


def normalize_language(code):
    """Reduce "fr-CH" style codes to a supported two-letter code, or None."""
    if not code:
        return None
    base = code.strip().lower()[:2]
    return base if base in TRANSLATIONS else None


def translate(lang, key):
    """Look up key for lang, falling back to English and then to the key."""
    table = TRANSLATIONS.get(lang, {})
    if key in table:
        return table[key]
    return TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key)


def detect_language(request):
    """
    Pick a UI language for a Flask request.

    Order: ?lang= query parameter, "lang" cookie, Accept-Language header.
    """
    for candidate in (request.args.get('lang'), request.cookies.get('lang')):
        lang = normalize_language(candidate)
        if lang:
            return lang

    return request.accept_languages.best_match(SUPPORTED_LANGUAGES, default=DEFAULT_LANGUAGE)
