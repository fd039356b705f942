import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TrackingEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_type', models.CharField(
                    choices=[
                        ('product_view', 'Product view'),
                        ('product_impression', 'Product impression'),
                        ('category_page_view', 'Category page view'),
                    ],
                    db_index=True, max_length=30,
                )),
                ('product_name', models.CharField(blank=True, max_length=200)),
                ('category_name', models.CharField(blank=True, max_length=100)),
                ('placement', models.CharField(
                    blank=True, db_index=True, max_length=50,
                    help_text='Where an impression happened, e.g. grid, crosssells, search-results.',
                )),
                ('page', models.PositiveIntegerField(blank=True, null=True)),
                ('session_key', models.CharField(blank=True, max_length=40)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('product', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='tracking_events', to='products.product',
                )),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['event_type', 'created_at'], name='tracking_event_type_idx'),
                ],
            },
        ),
    ]
