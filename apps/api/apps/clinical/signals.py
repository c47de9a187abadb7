"""
Clinical signals for consultation flow events.
"""
from django.dispatch import Signal

# Signal emitted after a successful appointment transition
# Payload (ids as strings, NO PHI):
#   - appointment_id: UUID of the appointment
#   - transition: mark_arrived | validate_identity | start_consultation |
#                 end_consultation | cancel | no_show
#   - from_status, to_status: consultation_status (or status for cancel/no_show)
#   - actor_id: UUID of user who performed the transition
appointment_transitioned = Signal()


# Example listener (for notification delivery, which lives outside this service):
#
# from django.dispatch import receiver
# from django.db import transaction
# from apps.clinical.signals import appointment_transitioned
#
# @receiver(appointment_transitioned)
# def on_transition(sender, appointment_id, transition, **kwargs):
#     transaction.on_commit(lambda: notify(appointment_id, transition))
