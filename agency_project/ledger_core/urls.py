from django.urls import path

from . import views

app_name = "ledger_core"

# <side> is "receivable" or "payable"
urlpatterns = [
    path("<str:side>/parties/<int:party_id>/payments/",
         views.record_payment_view, name="record-payment"),
    path("<str:side>/parties/<int:party_id>/ledger/",
         views.party_ledger_view, name="party-ledger"),
    path("<str:side>/obligations/",
         views.save_obligation_view, name="obligation-create"),
    path("<str:side>/obligations/<int:obligation_id>/",
         views.save_obligation_view, name="obligation-update"),
    path("<str:side>/obligations/<int:obligation_id>/delete/",
         views.delete_obligation_view, name="obligation-delete"),
    path("<str:side>/obligations/<int:obligation_id>/payments/",
         views.collect_payment_view, name="obligation-payment"),
    path("<str:side>/aging/", views.aging_view, name="aging"),
    path("services/", views.save_service_view, name="service-create"),
    path("services/<int:service_id>/", views.save_service_view,
         name="service-update"),
    path("services/<int:service_id>/deliver/", views.deliver_service_view,
         name="service-deliver"),
    path("services/<int:service_id>/status/", views.service_status_view,
         name="service-status"),
    path("services/<int:service_id>/delete/", views.delete_service_view,
         name="service-delete"),
    path("salaries/generate/", views.generate_salaries_view,
         name="salary-generate"),
    path("salaries/<int:salary_id>/pay/", views.pay_salary_view,
         name="salary-pay"),
    path("entries/<str:tx_type>/", views.create_entry_view,
         name="entry-create"),
    path("entries/<int:entry_id>/update/", views.update_entry_view,
         name="entry-update"),
    path("entries/<int:entry_id>/delete/", views.delete_entry_view,
         name="entry-delete"),
    path("reports/", views.report_view, name="report"),
    path("dashboard/", views.dashboard_view, name="dashboard"),
]
