from django.dispatch import Signal

# Sent after a review is committed. Receivers get ``review`` (ReviewLog) and
# ``state`` (domain CardState). Receiver errors never undo the review.
review_recorded = Signal()
