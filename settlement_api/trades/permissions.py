from rest_framework.permissions import BasePermission


class IsTradeParticipant(BasePermission):
    """Allow only the buyer, the seller or staff to act on a trade and its escrow/payment."""
    def has_object_permission(self, request, view, obj):
        transaction = getattr(obj, 'transaction', obj)
        if request.user.is_staff:
            return True
        return request.user.id in (transaction.buyer_id, transaction.seller_id)


class IsTradeSeller(BasePermission):
    def has_object_permission(self, request, view, obj):
        transaction = getattr(obj, 'transaction', obj)
        return request.user.is_staff or request.user.id == transaction.seller_id


class IsTradeBuyer(BasePermission):
    def has_object_permission(self, request, view, obj):
        transaction = getattr(obj, 'transaction', obj)
        return request.user.is_staff or request.user.id == transaction.buyer_id
