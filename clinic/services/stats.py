from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from clinic.models import Appointment, Billing, Doctor, LabResult, Patient, Prescription, Staff


def admin_stats(*, now=None) -> dict:
    """Headline counters and short time series for the admin dashboard."""
    now = now or timezone.now()
    appointments = Appointment.objects.all()
    billings = Billing.objects.all()

    revenue = {row['status']: row['total'] or Decimal('0')
               for row in billings.values('status').annotate(total=Sum('amount'))}

    by_status = [{'status': row['status'], 'count': row['count']}
                 for row in appointments.values('status').annotate(count=Count('id')).order_by('status')]

    by_date = [{'date': row['day'].isoformat(), 'count': row['count']}
               for row in appointments.filter(appointment_date__gte=now - timedelta(days=30))
               .annotate(day=TruncDate('appointment_date')).values('day')
               .annotate(count=Count('id')).order_by('day')]

    by_month = [{'month': row['month'].strftime('%Y-%m'), 'amount': row['amount']}
                for row in billings.filter(issued_at__gte=now - timedelta(days=182))
                .annotate(month=TruncMonth('issued_at')).values('month')
                .annotate(amount=Sum('amount')).order_by('month')]

    top_doctors = Doctor.objects.annotate(appointment_count=Count('appointments')).order_by('-appointment_count', 'id')[:5]

    return {
        'overview': {
            'totalPatients': Patient.objects.count(),
            'totalDoctors': Doctor.objects.count(),
            'totalStaff': Staff.objects.count(),
            'totalAppointments': appointments.count(),
            'totalPrescriptions': Prescription.objects.count(),
            'totalLabResults': LabResult.objects.count(),
            'pendingAppointments': appointments.filter(status=Appointment.STATUS_PENDING).count(),
            'completedAppointments': appointments.filter(status=Appointment.STATUS_COMPLETED).count(),
            'totalBillings': billings.count(),
            'paidBillings': billings.filter(status=Billing.STATUS_PAID).count(),
            'pendingBillings': billings.filter(status=Billing.STATUS_PENDING).count(),
            'totalRevenue': sum(revenue.values(), Decimal('0')),
            'paidRevenue': revenue.get(Billing.STATUS_PAID, Decimal('0')),
        },
        'appointmentsByStatus': by_status,
        'appointmentsByDate': by_date,
        'revenueByMonth': by_month,
        'topDoctors': [{
            'id': d.id,
            'name': f"{d.first_name} {d.last_name}",
            'specialization': d.specialization,
            'appointmentCount': d.appointment_count,
        } for d in top_doctors],
    }
