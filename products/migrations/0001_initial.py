import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Manufacturer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('slug', models.SlugField(max_length=100, unique=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='FilterDefinition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('page_limit', models.PositiveIntegerField(default=18)),
                ('order_by', models.CharField(
                    blank=True, max_length=100,
                    help_text='Field to order by, prefix with "-" for descending.',
                )),
                ('filters', models.JSONField(blank=True, default=list)),
                ('conditions', models.JSONField(blank=True, default=dict)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('slug', models.SlugField(max_length=100)),
                ('parent', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='children', to='products.category',
                )),
                ('filter_definition', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='categories', to='products.filterdefinition',
                )),
            ],
            options={
                'verbose_name_plural': 'categories',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('slug', models.SlugField(blank=True, max_length=200)),
                ('product_type', models.CharField(
                    choices=[('car', 'Car'), ('accessory', 'Accessory part')],
                    db_index=True, max_length=20,
                )),
                ('object_type', models.CharField(
                    blank=True,
                    choices=[('actual-car', 'Actual car'), ('virtual-car', 'Virtual car')],
                    help_text='Cars only: virtual cars group their actual variants.',
                    max_length=20,
                )),
                ('is_published', models.BooleanField(db_index=True, default=True)),
                ('colors', models.JSONField(blank=True, default=list)),
                ('car_class', models.CharField(blank=True, max_length=100)),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('description', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('manufacturer', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='products', to='products.manufacturer',
                )),
                ('category', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='products', to='products.category',
                )),
                ('parent', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='variants', to='products.product',
                )),
                ('accessories', models.ManyToManyField(
                    blank=True, related_name='accessory_for', to='products.product',
                )),
                ('compatible_to', models.ManyToManyField(
                    blank=True, related_name='compatible_accessories', to='products.product',
                )),
            ],
            options={
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['is_published', 'category'], name='product_published_category_idx'),
                    models.Index(fields=['is_published', 'product_type'], name='product_published_type_idx'),
                ],
            },
        ),
    ]
