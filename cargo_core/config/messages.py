"""User-facing messages and error strings.

This module centralizes all user-facing messages to improve maintainability
and enable future internationalization (i18n) support.
"""

# Rating errors
ERROR_NO_RATE_CARDS = "No rate cards available for this lane"
ERROR_NO_RATES_FOR_LANE = "No rates available from {origin_zone} to {destination_zone}"
ERROR_NO_MATCHING_SERVICE_LEVEL = 'No rate cards match service level "{service_level}"'
ERROR_NO_TIER_FOUND = "No valid tier found for the given billable weight"
ERROR_INVALID_QUOTE_REQUEST = "Invalid quote request"
ERROR_INVALID_BOOKING_REQUEST = "Invalid booking request"
ERROR_CONTENTS_WITHOUT_WEIGHT = "contents need a weight or dimensions to be rated"
ERROR_INVALID_VOLUMETRIC_DIVISOR = "volumetric divisor must be a positive number"

# Rate card configuration errors
ERROR_INVALID_TIER = "Invalid tier: max_kg must be > min_kg (tier {index})"
ERROR_TIER_OVERLAP = "Tier overlap between {previous} and {current}"
ERROR_NO_TIERS = "tiers must contain at least one tier"
ERROR_INVALID_TRANSIT_DAYS = "transit_days must be a non-negative number"
ERROR_RATE_CARD_FILE_NOT_FOUND = "Rate card file not found: {path}"
ERROR_INVALID_RATE_CARD = "Invalid rate card at index {index}: {reason}"

# Lifecycle errors
ERROR_MISSING_STATUS = "status is required"
ERROR_UNSUPPORTED_STATUS = "Unsupported status/type: {status}"
ERROR_TRANSITION_NOT_ALLOWED = "Transition {current} -> {proposed} not allowed: {reason}"
ERROR_STALE_SCAN = "Scan timestamp {now} is not after the last scan at {last_scan_at}"
ERROR_NOTE_TOO_LONG = "note must be <= {max_length} characters"
ERROR_SHIPMENT_NOT_FOUND = "Shipment not found: {ref}"
ERROR_SCAN_NOT_FOUND = "Scan not found: {scan_id}"
ERROR_CONCURRENT_UPDATE = "Shipment {ref} was modified concurrently (expected version {expected}, found {actual})"
ERROR_DUPLICATE_REFERENCE = "Duplicate reference: {ref}"
ERROR_ADMIN_REQUIRED = "Only admin roles may edit scan history"

# Transition rule reasons
REASON_DELIVERED_IS_FINAL = "shipment is already delivered"
REASON_CANCELED_NOT_SCANNABLE = "CANCELED cannot be reached through scans"
REASON_UNKNOWN_STATUS = "unknown milestone"
REASON_NOT_FORWARD = "status must move forward"
