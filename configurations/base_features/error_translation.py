
DEFAULT_ERROR_LANGUAGE = "en"
ERRORS = {
    "not_authenticated": {
        "en": "You are not signed in. Please log in to continue",
        "fr": "Il semble que vous ne soyez pas connecté. Merci de bien vouloir vous connecter pour continuer"
    },
    "server_error": {
        "en": "An error occurred. Please try again later",
        "fr": "Il semble qu’une erreur soit survenue. Merci de bien vouloir réessayer plus tard."
    },
    "bad_request": {
        "en": "Invalid request. Please check and try again",
        "fr": "Il semble que votre demande soit invalide. Merci de vérifier et de réessayer"
    },
    "multiple_objects_returned": {
        "en": "{count} {model} returned. Please check your request"
    },
    "not_found": {
        "en": "{model} not found",
        "fr": "{model} introuvable"
    },

    # workflow errors
    "validation_error": {
        "en": "{detail}",
        "fr": "{detail}"
    },
    "invalid_transition": {
        "en": "{entity} {entity_id} cannot move from {current_state} to {requested_state}: {unmet_guard}",
        "fr": "{entity} {entity_id} ne peut pas passer de {current_state} à {requested_state} : {unmet_guard}"
    },
    "insufficient_stock": {
        "en": "Insufficient stock for product {product_id} (batch {batch_id}, location {location_id}): requested {requested}, available {available}",
        "fr": "Stock insuffisant pour le produit {product_id} (lot {batch_id}, emplacement {location_id}) : demandé {requested}, disponible {available}"
    },
    "device_allocation_mismatch": {
        "en": "Device allocation mismatch on item {item_id}: {reason}",
        "fr": "Incohérence d'allocation d'appareils sur l'article {item_id} : {reason}"
    },
    "insufficient_device_selection": {
        "en": "Product {product_id} is serialized: select exactly {expected} available devices, {selected} selected",
        "fr": "Le produit {product_id} est sérialisé : sélectionnez exactement {expected} appareils disponibles, {selected} sélectionnés"
    },
    "concurrent_modification": {
        "en": "Inventory record {record_id} was modified concurrently, gave up after {attempts} attempts. Please retry",
        "fr": "L'enregistrement d'inventaire {record_id} a été modifié simultanément, abandon après {attempts} tentatives. Merci de réessayer"
    },
    "invalid_transfer": {
        "en": "Invalid transfer from {from_location} to {to_location}: {reason}",
        "fr": "Transfert invalide de {from_location} vers {to_location} : {reason}"
    },
    "location_required": {
        "en": "Job {job_id} cannot start without a GPS location capture",
        "fr": "La tâche {job_id} ne peut pas démarrer sans capture de position GPS"
    },
}
