from __future__ import annotations

from django.db.models import Q, QuerySet

from .models import UserProfile, UserRole


def resolve_user_role(user) -> str | None:
    if not user or not getattr(user, "is_authenticated", False):
        return None
    if user.is_superuser or user.is_staff:
        return UserRole.ADMIN
    try:
        return user.profile.role
    except UserProfile.DoesNotExist:
        return UserRole.COLLABORATOR


def is_admin(user) -> bool:
    return resolve_user_role(user) == UserRole.ADMIN


def can_manage_sales(user) -> bool:
    return resolve_user_role(user) in (UserRole.ADMIN, UserRole.FINANCE)


def can_view_sales(user) -> bool:
    return resolve_user_role(user) in (UserRole.ADMIN, UserRole.FINANCE, UserRole.SELLER)


def filter_sales_for_user(queryset: QuerySet, user) -> QuerySet:
    role = resolve_user_role(user)
    if role in (UserRole.ADMIN, UserRole.FINANCE):
        return queryset
    if role == UserRole.SELLER:
        return queryset.filter(seller=user)
    return queryset.none()


def filter_installments_for_user(queryset: QuerySet, user) -> QuerySet:
    role = resolve_user_role(user)
    if role in (UserRole.ADMIN, UserRole.FINANCE):
        return queryset
    if role == UserRole.SELLER:
        return queryset.filter(sale__seller=user)
    return queryset.none()


def filter_commissions_for_user(queryset: QuerySet, user) -> QuerySet:
    role = resolve_user_role(user)
    if role in (UserRole.ADMIN, UserRole.FINANCE):
        return queryset
    if role == UserRole.SELLER:
        return queryset.filter(seller=user)
    return queryset.none()


def filter_tickets_for_user(queryset: QuerySet, user) -> QuerySet:
    role = resolve_user_role(user)
    if role == UserRole.ADMIN:
        return queryset
    if role is None:
        return queryset.none()
    return queryset.filter(Q(responsible=user) | Q(created_by=user))


def filter_pdis_for_user(queryset: QuerySet, user, field_name: str = "collaborator") -> QuerySet:
    role = resolve_user_role(user)
    if role == UserRole.ADMIN:
        return queryset
    if role is None:
        return queryset.none()
    return queryset.filter(**{field_name: user})


def filter_sdr_for_user(queryset: QuerySet, user) -> QuerySet:
    role = resolve_user_role(user)
    if role in (UserRole.ADMIN, UserRole.FINANCE):
        return queryset
    if role is None:
        return queryset.none()
    return queryset.filter(sdr=user)
