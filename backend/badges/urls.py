from django.urls import path

from .views import (
    BadgeGenerateView,
    BadgePreviewView,
    BadgeTemplateDetailView,
    BadgeTemplateExportView,
    BadgeTemplateHistoryView,
    BadgeTemplateImportView,
    BadgeTemplateListCreateView,
    FieldTokenListView,
)

urlpatterns = [
    path("badges/field-tokens", FieldTokenListView.as_view(), name="badge-field-tokens"),
    path(
        "events/<int:event_id>/badge-templates",
        BadgeTemplateListCreateView.as_view(),
        name="badge-template-list",
    ),
    path(
        "events/<int:event_id>/badge-templates/import",
        BadgeTemplateImportView.as_view(),
        name="badge-template-import",
    ),
    path(
        "events/<int:event_id>/badge-templates/<int:template_id>",
        BadgeTemplateDetailView.as_view(),
        name="badge-template-detail",
    ),
    path(
        "events/<int:event_id>/badge-templates/<int:template_id>/export",
        BadgeTemplateExportView.as_view(),
        name="badge-template-export",
    ),
    path(
        "events/<int:event_id>/badge-templates/<int:template_id>/history",
        BadgeTemplateHistoryView.as_view(),
        name="badge-template-history",
    ),
    path("events/<int:event_id>/badges/generate", BadgeGenerateView.as_view(), name="badge-generate"),
    path("events/<int:event_id>/badges/preview", BadgePreviewView.as_view(), name="badge-preview"),
]
